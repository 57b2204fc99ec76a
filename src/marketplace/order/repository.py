"""Repository for the Order aggregate."""

from marketplace.domain import marketplace
from marketplace.order.order import NON_COUNTING_STATES, Order

_EXCLUDED = [status.value for status in NON_COUNTING_STATES]


@marketplace.repository(part_of=Order)
class OrderRepository:
    def count_for_vendor_on(self, vendor_id, day: str) -> int:
        """Orders a vendor received on ``day`` (ISO date), ignoring cancelled and rejected ones."""
        return (
            self._dao.query.filter(vendor_id=str(vendor_id), placed_on=day)
            .exclude(status__in=_EXCLUDED)
            .all()
            .total
        )

    def find_for_customer(self, customer_id) -> list[Order]:
        return self._dao.query.filter(customer_id=str(customer_id)).limit(None).all().items

    def find_for_vendor(self, vendor_id) -> list[Order]:
        return self._dao.query.filter(vendor_id=str(vendor_id)).limit(None).all().items
