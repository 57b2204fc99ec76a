"""Pydantic request/response schemas for the marketplace API.

These are external contracts, kept separate from the Protean aggregates and
commands they are translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1)


class PlaceOrderRequest(BaseModel):
    vendor_id: str
    items: list[CartItemSchema] = Field(min_length=1)
    pay_online: bool = True
    cod_confirmed: bool = False
    scheduled_at: datetime | None = None
    customer_note: str | None = Field(None, max_length=1000)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "vendor_id": "7f1c0a52-2f39-4c4d-8a57-5d6c1f3c9b20",
                    "items": [{"variant_id": "c3b1f8e2-5a0d-4e7e-9b1a-0d2f6f4f7c11", "quantity": 2}],
                    "pay_online": True,
                    "customer_note": "Ring twice",
                }
            ]
        }
    }


class TransitionRequest(BaseModel):
    status: str
    note: str | None = Field(None, max_length=1000)


class CancelOrderRequest(BaseModel):
    note: str | None = Field(None, max_length=1000)


class AdminOverrideRequest(BaseModel):
    status: str | None = None
    status_note: str | None = Field(None, max_length=1000)
    delivery_fee: int | None = Field(None, ge=0)
    delivery_fee_final: int | None = Field(None, ge=0)
    admin_note: str | None = Field(None, max_length=1000)
    courier_reference: str | None = Field(None, max_length=100)
    courier_status: str | None = None
    delivery_provider: str | None = None
    settlement_type: str | None = None
    is_cod: bool | None = None


class OrderItemResponse(BaseModel):
    variant_id: str
    title: str
    quantity: int
    unit_price: int
    line_total: int


class OrderHistoryResponse(BaseModel):
    status: str
    note: str | None = None
    actor_type: str | None = None
    changed_at: datetime


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    vendor_id: str
    status: str
    payment_status: str
    settlement_type: str
    is_cod: bool
    delivery_type: str
    delivery_provider: str | None = None
    courier_status: str | None = None
    distance_km: float | None = None
    subtotal: int
    delivery_fee: int
    total: int
    delivery_fee_final: int | None = None
    delivery_pricing: dict | None = None
    address: dict
    items: list[OrderItemResponse]
    history: list[OrderHistoryResponse]
    customer_note: str | None = None
    admin_note: str | None = None
    courier_reference: str | None = None
    scheduled_at: datetime | None = None
    created_at: datetime | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class PaymentRequestBody(BaseModel):
    order_id: str


class PaymentRequestResponse(BaseModel):
    payment_id: str
    track_id: str | None = None
    pay_link: str | None = None
    status: str


class VerifyPaymentRequest(BaseModel):
    track_id: str
    order_id: str | None = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    payment_status: str | None = None
    already_settled: bool = False
    kind: str | None = None
    reason: str | None = None


class CallbackResponse(BaseModel):
    status: str
    payment_status: str | None = None
    kind: str | None = None
    reason: str | None = None


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Payment declined"
    unreachable: bool = False
    amount_override: int | None = None


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
    unreachable: bool
    amount_override: int | None = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class NotificationRecordResponse(BaseModel):
    record_id: str
    channel: str
    target: str | None = None
    recipient: str
    event_name: str | None = None
    status: str
    attempts: int
    last_error: str | None = None
    provider_message_id: str | None = None
    correlation: dict
    sent_at: datetime | None = None


class QueueCountsResponse(BaseModel):
    counts: dict


class DeadLetterListResponse(BaseModel):
    dead_letters: list[dict]


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------
class RegisterVendorRequest(BaseModel):
    name: str = Field(..., max_length=255)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    service_radius_km: float = Field(gt=0)
    max_daily_orders: int | None = Field(None, ge=1)
    telegram_chat_id: str | None = Field(None, max_length=64)


class AddMenuVariantRequest(BaseModel):
    title: str = Field(..., max_length=255)
    price: int = Field(ge=0)
    code: str | None = Field(None, max_length=50)
    is_available: bool = True


class SetVendorActiveRequest(BaseModel):
    is_active: bool


class VendorIdResponse(BaseModel):
    vendor_id: str


class VariantIdResponse(BaseModel):
    variant_id: str


class RegisterCustomerRequest(BaseModel):
    mobile: str = Field(..., max_length=20)
    name: str | None = Field(None, max_length=255)
    telegram_chat_id: str | None = Field(None, max_length=64)


class AddAddressRequest(BaseModel):
    title: str = Field(..., max_length=100)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    full_address: str | None = None
    is_default: bool = False


class CustomerIdResponse(BaseModel):
    customer_id: str


class AddressIdResponse(BaseModel):
    address_id: str


# ---------------------------------------------------------------------------
# Vendor chatbot
# ---------------------------------------------------------------------------
class ChatReplyResponse(BaseModel):
    text: str | None = None
    answer: str | None = None
    order_id: str | None = None
    status: str | None = None
