"""Order placement — turn a cart into a PLACED order with fixed delivery terms.

Everything that can reject the order runs before the unit of work opens:
cart shape, default address, vendor lookup, menu variants and the vendor
matcher. The unit of work then only persists the order with its first
history row. Notifications and the audit event follow the commit and can
never fail the placement.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.core.unit_of_work import UnitOfWork
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.audit import record_safely
from marketplace.customer.addresses import ensure_default_address
from marketplace.matching.vendor_matcher import VendorMatcher
from marketplace.notification.orchestrator import NotificationOrchestrator, get_orchestrator
from marketplace.order.order import Order, PaymentStatus, SettlementType
from marketplace.vendor.vendor import Vendor

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CartLine:
    variant_id: str
    quantity: int


def _parse_cart(items) -> list[CartLine]:
    if not items:
        raise ValidationError({"items": ["An order needs at least one item"]})

    lines = []
    seen = set()
    for raw in items:
        if isinstance(raw, CartLine):
            line = raw
        else:
            line = CartLine(variant_id=raw.get("variant_id"), quantity=raw.get("quantity"))
        if not line.variant_id:
            raise ValidationError({"items": ["Every item needs a variant_id"]})
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool) or line.quantity < 1:
            raise ValidationError({"items": [f"Quantity for {line.variant_id} must be a positive whole number"]})
        if str(line.variant_id) in seen:
            raise ValidationError({"items": [f"Menu item {line.variant_id} appears more than once"]})
        seen.add(str(line.variant_id))
        lines.append(line)
    return lines


def settlement_for(match, pay_online: bool) -> tuple[SettlementType, PaymentStatus]:
    """Courier deliveries are always cash on delivery; in-zone follows the customer's choice."""
    if match.out_of_zone or not pay_online:
        return SettlementType.POSTPAID, PaymentStatus.NONE
    return SettlementType.PREPAID, PaymentStatus.PENDING


class OrderPlacement:
    def __init__(self, matcher: VendorMatcher | None = None, orchestrator: NotificationOrchestrator | None = None):
        self.matcher = matcher or VendorMatcher()
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> NotificationOrchestrator:
        return self._orchestrator or get_orchestrator()

    def place(
        self,
        customer_id,
        vendor_id,
        items,
        pay_online: bool = True,
        cod_confirmed: bool = False,
        scheduled_at=None,
        customer_note=None,
        now=None,
    ) -> Order:
        now = now or datetime.now(UTC)
        cart = _parse_cart(items)

        _, address = ensure_default_address(customer_id)
        vendor = current_domain.repository_for(Vendor).get(vendor_id)
        lines = [(vendor.variant(line.variant_id), line.quantity) for line in cart]

        match = self.matcher.match(vendor, address.location, cod_confirmed=cod_confirmed, now=now)
        settlement, payment_status = settlement_for(match, pay_online)

        with UnitOfWork():
            order = Order.place(
                customer_id=customer_id,
                vendor_id=vendor_id,
                lines=lines,
                match=match,
                address=address,
                settlement_type=settlement.value,
                payment_status=payment_status.value,
                scheduled_at=scheduled_at,
                customer_note=customer_note,
                now=now,
            )
            current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            vendor_id=str(vendor_id),
            customer_id=str(customer_id),
            total=order.total,
            delivery_type=order.delivery_type,
        )

        self.orchestrator.on_order_placed(order)
        record_safely(
            "order_created",
            {
                "order_id": str(order.id),
                "user_id": str(customer_id),
                "vendor_id": str(vendor_id),
                "actor_type": "customer",
                "total": order.total,
                "delivery_type": order.delivery_type,
                "settlement_type": order.settlement_type,
            },
        )
        return order
