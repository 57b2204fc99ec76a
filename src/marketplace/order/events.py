"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order and delivery terms were fixed."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    subtotal = Integer(required=True)
    delivery_fee = Integer(required=True)
    total = Integer(required=True)
    delivery_type = String(required=True)
    settlement_type = String(required=True)
    payment_status = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    actor_type = String(required=True)
    note = Text()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderPaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderOverridden:
    """An admin edited delivery or settlement fields directly."""

    __version__ = 1

    order_id = Identifier(required=True)
    changes = Text(required=True)  # JSON: {field: {"from": ..., "to": ...}}
    changed_at = DateTime(required=True)
