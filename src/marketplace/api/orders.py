"""FastAPI routes for orders — placement, status transitions and admin overrides."""

from fastapi import APIRouter, Depends

from marketplace.access import Actor
from marketplace.api.dependencies import current_actor
from marketplace.api.schemas import (
    AdminOverrideRequest,
    CancelOrderRequest,
    OrderHistoryResponse,
    OrderItemResponse,
    OrderResponse,
    PlaceOrderRequest,
    TransitionRequest,
)
from marketplace.errors import Forbidden
from marketplace.order.lifecycle import OrderLifecycle
from marketplace.order.order import Order, OrderStatus
from marketplace.order.placement import CartLine, OrderPlacement


def order_response(order: Order) -> OrderResponse:
    address = order.address_snapshot
    pricing = order.delivery_pricing
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        vendor_id=str(order.vendor_id),
        status=order.status,
        payment_status=order.payment_status,
        settlement_type=order.settlement_type,
        is_cod=bool(order.is_cod),
        delivery_type=order.delivery_type,
        delivery_provider=order.delivery_provider,
        courier_status=order.courier_status,
        distance_km=order.distance_km,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        total=order.total,
        delivery_fee_final=order.delivery_fee_final,
        delivery_pricing=(
            {
                "base_fee": pricing.base_fee,
                "per_km_rate": pricing.per_km_rate,
                "peak_multiplier": pricing.peak_multiplier,
                "computed_fee": pricing.computed_fee,
                "distance_km": pricing.distance_km,
            }
            if pricing
            else None
        ),
        address={"title": address.title, "lat": address.lat, "lng": address.lng, "full_address": address.full_address},
        items=[
            OrderItemResponse(
                variant_id=str(item.variant_id),
                title=item.title,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in order.items
        ],
        history=[
            OrderHistoryResponse(status=row.status, note=row.note, actor_type=row.actor_type, changed_at=row.changed_at)
            for row in order.status_history()
        ],
        customer_note=order.customer_note,
        admin_note=order.admin_note,
        courier_reference=order.courier_reference,
        scheduled_at=order.scheduled_at,
        created_at=order.created_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def place_order(body: PlaceOrderRequest, actor: Actor = Depends(current_actor)) -> OrderResponse:
    """Place an order for the calling customer, delivered to their default address."""
    if not actor.is_customer:
        raise Forbidden("Only customers can place orders")
    order = OrderPlacement().place(
        customer_id=actor.id,
        vendor_id=body.vendor_id,
        items=[CartLine(variant_id=item.variant_id, quantity=item.quantity) for item in body.items],
        pay_online=body.pay_online,
        cod_confirmed=body.cod_confirmed,
        scheduled_at=body.scheduled_at,
        customer_note=body.customer_note,
    )
    return order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    return order_response(OrderLifecycle().get(order_id, actor))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def transition_order(
    order_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> OrderResponse:
    order = OrderLifecycle().transition(order_id, body.status, note=body.note, actor=actor)
    return order_response(order)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)) -> OrderResponse:
    order = OrderLifecycle().transition(order_id, OrderStatus.CANCELLED, note=body.note, actor=actor)
    return order_response(order)


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_order_router = APIRouter(prefix="/admin/orders", tags=["admin"])


@admin_order_router.patch("/{order_id}", response_model=OrderResponse)
def override_order(
    order_id: str, body: AdminOverrideRequest, actor: Actor = Depends(current_actor)
) -> OrderResponse:
    """Edit delivery terms, notes or status of an order (admins only)."""
    order = OrderLifecycle().admin_override(order_id, body.model_dump(exclude_unset=True), actor=actor)
    return order_response(order)
