"""Domain events for the Payment aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Payment")
class PaymentRequested:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    track_id = String()
    amount = Integer(required=True)
    requested_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentConfirmed:
    """The gateway confirmed the payment and the amounts matched."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    track_id = String()
    amount = Integer(required=True)
    ref_number = String()
    verified_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    track_id = String()
    reason = String(required=True)
    failed_at = DateTime(required=True)
