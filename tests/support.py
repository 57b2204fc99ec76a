"""Shared builders for the marketplace tests: settings, a vendor with a menu, customers and orders."""

from protean import current_domain

from marketplace.access import Actor
from marketplace.config import Settings
from marketplace.customer.customer import Customer
from marketplace.order.placement import OrderPlacement
from marketplace.vendor.vendor import Vendor

# Vendor in central Tehran; 0.01° of latitude is ~1.11 km
VENDOR_POINT = (35.7000, 51.4000)
IN_ZONE_POINT = (35.7100, 51.4000)
OUT_OF_ZONE_POINT = (35.7500, 51.4000)
BEYOND_SERVICE_POINT = (36.0000, 51.4000)


def make_settings(**overrides) -> Settings:
    """Settings with deterministic tariffs, fake providers and no retry delay."""
    values = {
        "environment": "test",
        "internal_delivery_fee": 0,
        "courier_base_fee": 50_000,
        "courier_per_km_fee": 10_000,
        "courier_peak_multiplier": 1.0,
        "courier_max_km": 30.0,
        "gateway": "fake",
        "notification_backoff_seconds": 0,
        "redis_url": None,
        "telegram_customer_bot_token": None,
        "telegram_vendor_bot_token": None,
        "telegram_admin_bot_token": None,
        "admin_chat_id": None,
        "melipayamak_username": None,
        "melipayamak_password": None,
        "callback_secret": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def register_vendor(name="Kebab House", max_daily_orders=50, telegram_chat_id="vendor-chat-1", radius_km=3.0):
    vendor = Vendor.register(
        name=name,
        lat=VENDOR_POINT[0],
        lng=VENDOR_POINT[1],
        service_radius_km=radius_km,
        max_daily_orders=max_daily_orders,
        telegram_chat_id=telegram_chat_id,
    )
    vendor.add_variant(title="Koobideh", price=250_000, code="KB-1")
    vendor.add_variant(title="Joojeh", price=300_000, code="JJ-1")
    current_domain.repository_for(Vendor).add(vendor)
    return current_domain.repository_for(Vendor).get(vendor.id)


def register_customer(mobile="09120000001", point=IN_ZONE_POINT, telegram_chat_id="customer-chat-1", with_address=True):
    customer = Customer.register(mobile=mobile, name="Sara", telegram_chat_id=telegram_chat_id)
    if with_address:
        customer.add_address(title="Home", lat=point[0], lng=point[1], full_address="Valiasr St, No. 12")
    current_domain.repository_for(Customer).add(customer)
    return current_domain.repository_for(Customer).get(customer.id)


def menu(vendor) -> dict:
    """Variant ids of the vendor's menu, keyed by title."""
    return {variant.title: str(variant.id) for variant in vendor.menu}


def place_order(vendor, customer, quantities=None, **kwargs):
    """Place an order through OrderPlacement. Defaults to two Koobideh (500,000 rials)."""
    ids = menu(vendor)
    quantities = quantities or {"Koobideh": 2}
    items = [{"variant_id": ids[title], "quantity": qty} for title, qty in quantities.items()]
    return OrderPlacement().place(customer_id=str(customer.id), vendor_id=str(vendor.id), items=items, **kwargs)


def actor_headers(role: str, actor_id) -> dict:
    """Headers the authentication proxy adds in front of the API."""
    return {"X-Actor-Id": str(actor_id), "X-Actor-Role": role}


def actor_for(role: str, vendor=None, customer=None) -> Actor:
    if role == "vendor":
        return Actor.vendor(vendor.id)
    if role == "customer":
        return Actor.customer(customer.id)
    return Actor.admin()
