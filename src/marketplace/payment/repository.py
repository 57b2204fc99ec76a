"""Repository for the Payment aggregate."""

from marketplace.domain import marketplace
from marketplace.payment.payment import Payment


@marketplace.repository(part_of=Payment)
class PaymentRepository:
    def find_by_order(self, order_id) -> Payment | None:
        return self._dao.query.filter(order_id=str(order_id)).all().first

    def find_by_track_id(self, track_id) -> Payment | None:
        return self._dao.query.filter(track_id=str(track_id)).all().first
