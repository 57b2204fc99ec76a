"""FastAPI routes for vendor and customer onboarding."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from marketplace.access import Actor
from marketplace.api.dependencies import current_actor
from marketplace.api.schemas import (
    AddAddressRequest,
    AddMenuVariantRequest,
    AddressIdResponse,
    CustomerIdResponse,
    RegisterCustomerRequest,
    RegisterVendorRequest,
    SetVendorActiveRequest,
    StatusResponse,
    VariantIdResponse,
    VendorIdResponse,
)
from marketplace.customer.addresses import AddAddress, RegisterCustomer
from marketplace.errors import Forbidden
from marketplace.vendor.registration import AddMenuVariant, RegisterVendor, SetVendorActive


# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendors", tags=["vendors"])


@vendor_router.post("", status_code=201, response_model=VendorIdResponse)
def register_vendor(body: RegisterVendorRequest, actor: Actor = Depends(current_actor)) -> VendorIdResponse:
    if not actor.is_admin:
        raise Forbidden("Only admins can register vendors")
    command = RegisterVendor(
        name=body.name,
        lat=body.lat,
        lng=body.lng,
        service_radius_km=body.service_radius_km,
        max_daily_orders=body.max_daily_orders,
        telegram_chat_id=body.telegram_chat_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return VendorIdResponse(vendor_id=result)


@vendor_router.post("/{vendor_id}/menu", status_code=201, response_model=VariantIdResponse)
def add_menu_variant(
    vendor_id: str, body: AddMenuVariantRequest, actor: Actor = Depends(current_actor)
) -> VariantIdResponse:
    if not (actor.is_admin or (actor.is_vendor and actor.id == vendor_id)):
        raise Forbidden("Vendors can only edit their own menu")
    command = AddMenuVariant(
        vendor_id=vendor_id,
        title=body.title,
        price=body.price,
        code=body.code,
        is_available=body.is_available,
    )
    result = current_domain.process(command, asynchronous=False)
    return VariantIdResponse(variant_id=result)


@vendor_router.put("/{vendor_id}/active", response_model=StatusResponse)
def set_vendor_active(
    vendor_id: str, body: SetVendorActiveRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    if not actor.is_admin:
        raise Forbidden("Only admins can activate or deactivate vendors")
    command = SetVendorActive(vendor_id=vendor_id, is_active=body.is_active)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
customer_router = APIRouter(prefix="/customers", tags=["customers"])


@customer_router.post("", status_code=201, response_model=CustomerIdResponse)
def register_customer(body: RegisterCustomerRequest) -> CustomerIdResponse:
    command = RegisterCustomer(
        mobile=body.mobile,
        name=body.name,
        telegram_chat_id=body.telegram_chat_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CustomerIdResponse(customer_id=result)


@customer_router.post("/{customer_id}/addresses", status_code=201, response_model=AddressIdResponse)
def add_address(
    customer_id: str, body: AddAddressRequest, actor: Actor = Depends(current_actor)
) -> AddressIdResponse:
    if not (actor.is_admin or (actor.is_customer and actor.id == customer_id)):
        raise Forbidden("Customers can only edit their own addresses")
    command = AddAddress(
        customer_id=customer_id,
        title=body.title,
        lat=body.lat,
        lng=body.lng,
        full_address=body.full_address,
        is_default=body.is_default,
    )
    result = current_domain.process(command, asynchronous=False)
    return AddressIdResponse(address_id=result)
