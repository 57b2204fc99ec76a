"""Order aggregate — the core of the fulfillment context.

An order is created once, already PLACED, with its delivery terms fixed by
the geo matcher and its prices snapshotted from the vendor menu. From there
its status only moves along the transition table below until it reaches a
terminal state.

State Machine (10 states):
    DRAFT → PLACED → VENDOR_ACCEPTED → PREPARING → READY →
    COURIER_ASSIGNED → OUT_FOR_DELIVERY → DELIVERED
    PLACED → VENDOR_REJECTED
    any non-terminal state → CANCELLED

Money is held in whole rials. ``total`` is always ``subtotal + delivery_fee``
and is never taken from a client.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition
from marketplace.matching.geo import CourierStatus, DeliveryProvider, DeliveryType
from marketplace.order.events import (
    OrderOverridden,
    OrderPaymentStatusChanged,
    OrderPlaced,
    OrderStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    DRAFT = "DRAFT"
    PLACED = "PLACED"
    VENDOR_ACCEPTED = "VENDOR_ACCEPTED"
    VENDOR_REJECTED = "VENDOR_REJECTED"
    PREPARING = "PREPARING"
    READY = "READY"
    COURIER_ASSIGNED = "COURIER_ASSIGNED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(Enum):
    NONE = "NONE"
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class SettlementType(Enum):
    PREPAID = "PREPAID"
    POSTPAID = "POSTPAID"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.PLACED, OrderStatus.CANCELLED},
    OrderStatus.PLACED: {
        OrderStatus.VENDOR_ACCEPTED,
        OrderStatus.VENDOR_REJECTED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.VENDOR_ACCEPTED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COURIER_ASSIGNED, OrderStatus.CANCELLED},
    OrderStatus.COURIER_ASSIGNED: {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.CANCELLED},
    OrderStatus.OUT_FOR_DELIVERY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.VENDOR_REJECTED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)

# Orders that still count against a vendor's daily cap exclude these
NON_COUNTING_STATES = frozenset({OrderStatus.CANCELLED, OrderStatus.VENDOR_REJECTED})


def is_valid_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class AddressSnapshot:
    """The delivery address as it was when the order was placed.

    Decoupled from the customer's address book: later edits or deletions
    there never change where an existing order goes.
    """

    title = String(max_length=100)
    lat = Float(required=True)
    lng = Float(required=True)
    full_address = Text()


@marketplace.value_object(part_of="Order")
class DeliveryPricing:
    """How the delivery fee was computed, kept for disputes. Never recomputed."""

    base_fee = Integer(default=0)
    per_km_rate = Integer(default=0)
    peak_multiplier = Float(default=1.0)
    computed_fee = Integer(default=0)
    distance_km = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    variant_id = Identifier(required=True)
    title = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@marketplace.entity(part_of="Order")
class OrderStatusHistory:
    """One row per status change or status-level note. Append-only."""

    status = String(choices=OrderStatus, required=True)
    note = Text()
    actor_type = String(max_length=20)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PLACED.value)
    items = HasMany(OrderItem)
    history = HasMany(OrderStatusHistory)

    # Money, whole rials
    subtotal = Integer(required=True, min_value=0)
    delivery_fee = Integer(default=0, min_value=0)
    total = Integer(required=True, min_value=0)

    # Payment & settlement
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.NONE.value)
    settlement_type = String(choices=SettlementType, default=SettlementType.PREPAID.value)
    is_cod = Boolean(default=False)

    # Delivery terms fixed at placement
    delivery_type = String(choices=DeliveryType, required=True)
    delivery_provider = String(choices=DeliveryProvider, required=True)
    courier_status = String(choices=CourierStatus, default=CourierStatus.PENDING.value)
    distance_km = Float(default=0.0)
    delivery_pricing = ValueObject(DeliveryPricing)
    address_snapshot = ValueObject(AddressSnapshot, required=True)

    scheduled_at = DateTime()
    customer_note = Text()

    # Admin overrides
    admin_note = Text()
    courier_reference = String(max_length=255)
    delivery_fee_final = Integer(min_value=0)

    placed_on = String(max_length=10)  # ISO date, for daily capacity counts
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_is_subtotal_plus_delivery_fee(self):
        if self.subtotal is None or self.total is None:
            return
        if self.total != self.subtotal + (self.delivery_fee or 0):
            raise ValidationError({"total": ["Order total must equal subtotal plus delivery fee"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        vendor_id,
        lines,
        match,
        address,
        settlement_type,
        payment_status,
        scheduled_at=None,
        customer_note=None,
        actor_type="customer",
        now=None,
    ):
        """Create an order directly in PLACED.

        ``lines`` is a list of ``(variant, quantity)`` pairs where ``variant``
        is the vendor's MenuVariant; its title and price are copied onto the
        order line.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = now or datetime.now(UTC)
        items = [
            OrderItem(
                variant_id=str(variant.id),
                title=variant.title,
                quantity=quantity,
                unit_price=variant.price,
            )
            for variant, quantity in lines
        ]
        subtotal = sum(item.line_total for item in items)
        settlement = SettlementType(settlement_type)

        pricing = match.pricing
        order = cls(
            customer_id=customer_id,
            vendor_id=vendor_id,
            status=OrderStatus.PLACED.value,
            items=items,
            history=[
                OrderStatusHistory(
                    status=OrderStatus.PLACED.value,
                    note="Order placed",
                    actor_type=actor_type,
                    changed_at=now,
                )
            ],
            subtotal=subtotal,
            delivery_fee=match.fee,
            total=subtotal + match.fee,
            payment_status=PaymentStatus(payment_status).value,
            settlement_type=settlement.value,
            is_cod=settlement is SettlementType.POSTPAID,
            delivery_type=match.delivery_type.value,
            delivery_provider=match.delivery_provider.value,
            courier_status=match.courier_status.value,
            distance_km=round(match.distance_km, 3),
            delivery_pricing=DeliveryPricing(
                base_fee=pricing.base_fee,
                per_km_rate=pricing.per_km_rate,
                peak_multiplier=pricing.peak_multiplier,
                computed_fee=pricing.computed_fee,
                distance_km=pricing.distance_km,
            ),
            address_snapshot=AddressSnapshot(
                title=address.title,
                lat=address.lat,
                lng=address.lng,
                full_address=address.full_address,
            ),
            scheduled_at=scheduled_at,
            customer_note=customer_note,
            placed_on=now.date().isoformat(),
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                vendor_id=str(vendor_id),
                subtotal=order.subtotal,
                delivery_fee=order.delivery_fee,
                total=order.total,
                delivery_type=order.delivery_type,
                settlement_type=order.settlement_type,
                payment_status=order.payment_status,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def out_of_zone(self) -> bool:
        return self.delivery_type == DeliveryType.OUT_OF_ZONE_COURIER.value

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATES

    def status_history(self) -> list[OrderStatusHistory]:
        """History rows, oldest first."""
        return sorted(self.history, key=lambda row: row.changed_at)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return is_valid_transition(OrderStatus(self.status), target)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus):
        current = OrderStatus(self.status)
        if not is_valid_transition(current, target_status):
            raise InvalidTransition(
                f"Cannot transition from {current.value} to {target_status.value}",
                order_id=str(self.id),
                from_status=current.value,
                to_status=target_status.value,
            )

    def transition_to(self, target_status: OrderStatus, note=None, actor_type="system", now=None):
        """Move to ``target_status`` and append the history row."""
        self._assert_can_transition(target_status)

        now = now or datetime.now(UTC)
        previous = self.status
        self.status = target_status.value
        self.updated_at = now
        if target_status is OrderStatus.CANCELLED and self.courier_status in (
            CourierStatus.PENDING.value,
            CourierStatus.REQUESTED.value,
        ):
            self.courier_status = CourierStatus.CANCELLED.value
        elif target_status is OrderStatus.DELIVERED:
            self.courier_status = CourierStatus.DELIVERED.value

        self.add_history(
            OrderStatusHistory(
                status=target_status.value,
                note=note,
                actor_type=actor_type,
                changed_at=now,
            )
        )
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                from_status=previous,
                to_status=target_status.value,
                actor_type=actor_type,
                note=note,
                changed_at=now,
            )
        )

    def set_payment_status(self, status: PaymentStatus, now=None):
        if self.payment_status == status.value:
            return
        now = now or datetime.now(UTC)
        previous = self.payment_status
        self.payment_status = status.value
        self.updated_at = now
        self.raise_(
            OrderPaymentStatusChanged(
                order_id=str(self.id),
                from_status=previous,
                to_status=status.value,
                changed_at=now,
            )
        )

    def confirm_payment(self, now=None):
        """Mark the order paid; note it in the history while still PLACED."""
        now = now or datetime.now(UTC)
        self.set_payment_status(PaymentStatus.PAID, now=now)
        if self.status == OrderStatus.PLACED.value:
            self.add_history(
                OrderStatusHistory(
                    status=self.status,
                    note="payment confirmed",
                    actor_type="system",
                    changed_at=now,
                )
            )

    def fail_payment(self, now=None):
        self.set_payment_status(PaymentStatus.FAILED, now=now)

    # -------------------------------------------------------------------
    # Admin overrides
    # -------------------------------------------------------------------
    def apply_overrides(self, changes: dict, now=None) -> dict:
        """Apply admin field overrides and return ``{field: {"from", "to"}}``.

        Status is not handled here; it goes through ``transition_to``.
        A new ``delivery_fee`` recomputes the total.
        """
        now = now or datetime.now(UTC)
        diff = {}
        with atomic_change(self):
            for field_name, value in changes.items():
                previous = getattr(self, field_name)
                if previous == value:
                    continue
                setattr(self, field_name, value)
                diff[field_name] = {"from": previous, "to": value}

            if "delivery_fee" in diff:
                previous_total = self.total
                self.total = self.subtotal + self.delivery_fee
                diff["total"] = {"from": previous_total, "to": self.total}
            if "settlement_type" in diff:
                self.is_cod = self.settlement_type == SettlementType.POSTPAID.value

            if diff:
                self.updated_at = now

        if diff:
            self.raise_(
                OrderOverridden(
                    order_id=str(self.id),
                    changes=json.dumps(diff, default=str),
                    changed_at=now,
                )
            )
        return diff
