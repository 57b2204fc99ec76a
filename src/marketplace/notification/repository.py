"""Repository for the NotificationRecord aggregate."""

from marketplace.domain import marketplace
from marketplace.notification.record import NotificationRecord


@marketplace.repository(part_of=NotificationRecord)
class NotificationRecordRepository:
    def find_for_order(self, order_id) -> list[NotificationRecord]:
        """Every record correlated with ``order_id``, oldest first."""
        records = self._dao.query.filter(order_id=str(order_id)).limit(None).all().items
        return sorted(records, key=lambda record: record.created_at)
