"""Order lifecycle — who may move an order where, applied atomically.

The transition table on the Order aggregate decides legality for every
actor. Authority is layered on top:

- admin (and the system itself): any legal transition
- vendor: only its own orders, and only accept / reject / preparing /
  ready / delivered
- customer: only its own order, only to CANCELLED, only from DRAFT or PLACED

Legality is checked first, so an illegal pair is InvalidTransition no
matter who asks. Status, history row and domain event are written in one
unit of work; notifications and audit events run after the commit.
"""

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.access import SYSTEM, Actor, ActorRole
from marketplace.audit import record_safely
from marketplace.errors import Forbidden, InvalidTransition
from marketplace.matching.geo import CourierStatus, DeliveryProvider
from marketplace.notification.orchestrator import NotificationOrchestrator, get_orchestrator
from marketplace.order.order import Order, OrderStatus, SettlementType

logger = structlog.get_logger(__name__)

VENDOR_TARGETS = frozenset(
    {
        OrderStatus.VENDOR_ACCEPTED,
        OrderStatus.VENDOR_REJECTED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.DELIVERED,
    }
)

CUSTOMER_CANCELLABLE_FROM = frozenset({OrderStatus.DRAFT, OrderStatus.PLACED})

# Milestones that get their own audit event on top of order_status_change
_MILESTONE_EVENTS = {
    OrderStatus.VENDOR_ACCEPTED: "vendor_accepted",
    OrderStatus.VENDOR_REJECTED: "vendor_rejected",
    OrderStatus.DELIVERED: "delivery_completed",
    OrderStatus.CANCELLED: "order_cancelled",
}

# Admin-editable fields and the enum each value must belong to (None = free value)
_OVERRIDABLE_FIELDS = {
    "delivery_fee": None,
    "delivery_fee_final": None,
    "admin_note": None,
    "courier_reference": None,
    "courier_status": CourierStatus,
    "delivery_provider": DeliveryProvider,
    "settlement_type": SettlementType,
    "is_cod": None,
}


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).upper())
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


def authorize(order: Order, target: OrderStatus, actor: Actor) -> None:
    """Raise Forbidden unless ``actor`` may move ``order`` to ``target``."""
    if actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
        return

    if actor.is_vendor:
        if str(order.vendor_id) != str(actor.id):
            raise Forbidden("Vendors can only update their own orders", order_id=str(order.id))
        if target not in VENDOR_TARGETS:
            raise Forbidden(f"Vendors cannot move orders to {target.value}", order_id=str(order.id))
        return

    if actor.is_customer:
        if str(order.customer_id) != str(actor.id):
            raise Forbidden("Customers can only update their own orders", order_id=str(order.id))
        if target is not OrderStatus.CANCELLED:
            raise Forbidden("Customers can only cancel orders", order_id=str(order.id))
        if OrderStatus(order.status) not in CUSTOMER_CANCELLABLE_FROM:
            raise Forbidden(
                "Order can no longer be cancelled, the vendor has already committed to it",
                order_id=str(order.id),
                status=order.status,
            )
        return

    raise Forbidden("Unknown actor role", role=str(actor.role))


def can_view(order: Order, actor: Actor) -> bool:
    if actor.role in (ActorRole.ADMIN, ActorRole.SYSTEM):
        return True
    if actor.is_vendor:
        return str(order.vendor_id) == str(actor.id)
    if actor.is_customer:
        return str(order.customer_id) == str(actor.id)
    return False


class OrderLifecycle:
    def __init__(self, orchestrator: NotificationOrchestrator | None = None):
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> NotificationOrchestrator:
        return self._orchestrator or get_orchestrator()

    def get(self, order_id, actor: Actor) -> Order:
        order = current_domain.repository_for(Order).get(order_id)
        if not can_view(order, actor):
            raise Forbidden("Order belongs to someone else", order_id=str(order_id))
        return order

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def transition(self, order_id, next_status, note=None, actor: Actor = SYSTEM) -> Order:
        target = parse_status(next_status)

        with UnitOfWork():
            repo = current_domain.repository_for(Order)
            order = repo.get(order_id)
            previous = order.status

            if not order.can_transition_to(target):
                raise InvalidTransition(
                    f"Cannot transition from {previous} to {target.value}",
                    order_id=str(order_id),
                    from_status=previous,
                    to_status=target.value,
                )
            authorize(order, target, actor)

            order.transition_to(target, note=note, actor_type=actor.role.value)
            repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=previous,
            to_status=target.value,
            actor_type=actor.role.value,
        )
        self._after_transition(order, previous, target, note, actor)
        return order

    def _after_transition(self, order: Order, previous: str, target: OrderStatus, note, actor: Actor):
        self.orchestrator.on_status_changed(order, previous_status=previous, note=note, actor_type=actor.role.value)

        payload = {
            "order_id": str(order.id),
            "user_id": str(order.customer_id),
            "vendor_id": str(order.vendor_id),
            "actor_type": actor.role.value,
            "actor_id": actor.id,
            "from": previous,
            "to": target.value,
            "actorType": actor.role.value,
            "note": note,
        }
        record_safely("order_status_change", payload)
        milestone = _MILESTONE_EVENTS.get(target)
        if milestone:
            record_safely(milestone, payload)

    # -------------------------------------------------------------------
    # Payment hook
    # -------------------------------------------------------------------
    @staticmethod
    def record_payment_confirmed(order: Order) -> Order:
        """Mark ``order`` paid. Called inside the reconciler's unit of work; the caller persists."""
        order.confirm_payment()
        return order

    # -------------------------------------------------------------------
    # Admin overrides
    # -------------------------------------------------------------------
    @staticmethod
    def _clean_overrides(overrides: dict) -> tuple[dict, OrderStatus | None, str | None]:
        overrides = dict(overrides)
        status = overrides.pop("status", None)
        status_note = overrides.pop("status_note", None)

        unknown = sorted(set(overrides) - set(_OVERRIDABLE_FIELDS))
        if unknown:
            raise ValidationError({"overrides": [f"Fields cannot be overridden: {', '.join(unknown)}"]})

        changes = {}
        for field_name, value in overrides.items():
            if value is None:
                continue
            enum_cls = _OVERRIDABLE_FIELDS[field_name]
            if enum_cls is not None:
                try:
                    value = enum_cls(value).value
                except ValueError:
                    raise ValidationError({field_name: [f"Invalid value: {value}"]}) from None
            if field_name in ("delivery_fee", "delivery_fee_final") and (not isinstance(value, int) or value < 0):
                raise ValidationError({field_name: ["Must be a non-negative whole amount"]})
            changes[field_name] = value

        return changes, parse_status(status) if status else None, status_note

    def admin_override(self, order_id, overrides: dict, actor: Actor) -> Order:
        if not actor.is_admin:
            raise Forbidden("Only admins can override orders", order_id=str(order_id))

        changes, target, status_note = self._clean_overrides(overrides)

        with UnitOfWork():
            repo = current_domain.repository_for(Order)
            order = repo.get(order_id)
            previous_status = order.status
            status_changed = target is not None and target.value != previous_status

            if status_changed and not order.can_transition_to(target):
                raise InvalidTransition(
                    f"Cannot transition from {previous_status} to {target.value}",
                    order_id=str(order_id),
                    from_status=previous_status,
                    to_status=target.value,
                )

            diff = order.apply_overrides(changes)
            if status_changed:
                order.transition_to(target, note=status_note, actor_type=actor.role.value)
                diff["status"] = {"from": previous_status, "to": target.value}
            repo.add(order)

        logger.info("Order overridden by admin", order_id=str(order.id), fields=sorted(diff))
        record_safely(
            "order_admin_override",
            {
                "order_id": str(order.id),
                "vendor_id": str(order.vendor_id),
                "user_id": str(order.customer_id),
                "actor_type": actor.role.value,
                "actor_id": actor.id,
                "previous": {name: change["from"] for name, change in diff.items()},
                "next": {name: change["to"] for name, change in diff.items()},
            },
        )
        if status_changed:
            self._after_transition(order, previous_status, target, status_note, actor)
        return order
