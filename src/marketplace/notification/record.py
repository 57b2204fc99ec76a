"""NotificationRecord aggregate — write-ahead trace of a single dispatch series.

The record is persisted in PENDING before any provider is contacted, so a
crash mid-send still leaves something to inspect and retry. Each delivery
attempt then moves it to SENT or FAILED and bumps ``attempts``.

State Machine:
    PENDING → SENT (terminal)
    PENDING → FAILED
    FAILED → SENT | FAILED (retries)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text

from marketplace.domain import marketplace


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationChannel(Enum):
    CHAT = "Chat"
    SMS = "SMS"


class NotificationTarget(Enum):
    """Which bot identity a chat message goes out through."""

    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class NotificationStatus(Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class NotificationEvent(Enum):
    ORDER_PLACED = "order_placed"
    VENDOR_NEW_ORDER = "vendor_new_order"
    ADMIN_NEW_ORDER = "admin_new_order"
    PAYMENT_CONFIRMED = "payment_confirmed"
    VENDOR_PAYMENT_CONFIRMED = "vendor_payment_confirmed"
    PAYMENT_FAILED = "payment_failed"
    ORDER_ACCEPTED = "order_accepted"
    ORDER_REJECTED = "order_rejected"
    ORDER_PROGRESS = "order_progress"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"
    VENDOR_ORDER_CANCELLED = "vendor_order_cancelled"


_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.FAILED: {NotificationStatus.SENT, NotificationStatus.FAILED},
    NotificationStatus.SENT: set(),  # Terminal
}


@marketplace.aggregate
class NotificationRecord:
    channel = String(choices=NotificationChannel, required=True)
    target = String(choices=NotificationTarget, default=NotificationTarget.CUSTOMER.value)
    recipient = String(required=True, max_length=255)
    message = Text(required=True)
    event_name = String(max_length=100)

    # Correlation
    order_id = Identifier()
    user_id = Identifier()
    vendor_id = Identifier()

    status = String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    attempts = Integer(default=0, min_value=0)
    last_error = String(max_length=1000)
    provider_message_id = String(max_length=255)
    provider_status = String(max_length=50)

    created_at = DateTime()
    updated_at = DateTime()
    sent_at = DateTime()

    @classmethod
    def create(cls, channel, recipient, message, event_name=None, target=None, correlation=None):
        correlation = correlation or {}
        now = datetime.now(UTC)
        return cls(
            channel=NotificationChannel(channel).value,
            target=NotificationTarget(target or NotificationTarget.CUSTOMER.value).value,
            recipient=str(recipient),
            message=message,
            event_name=event_name,
            order_id=correlation.get("order_id"),
            user_id=correlation.get("user_id"),
            vendor_id=correlation.get("vendor_id"),
            status=NotificationStatus.PENDING.value,
            attempts=0,
            created_at=now,
            updated_at=now,
        )

    @property
    def correlation(self) -> dict:
        return {
            "order_id": str(self.order_id) if self.order_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "vendor_id": str(self.vendor_id) if self.vendor_id else None,
        }

    @property
    def is_sent(self) -> bool:
        return self.status == NotificationStatus.SENT.value

    def _assert_can_transition(self, target_status):
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, provider_message_id=None, provider_status="sent"):
        self._assert_can_transition(NotificationStatus.SENT)
        now = datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.attempts = self.attempts + 1
        self.last_error = None
        self.provider_message_id = provider_message_id
        self.provider_status = provider_status
        self.sent_at = now
        self.updated_at = now

    def mark_failed(self, error, provider_status="failed"):
        self._assert_can_transition(NotificationStatus.FAILED)
        self.status = NotificationStatus.FAILED.value
        self.attempts = self.attempts + 1
        self.last_error = (error or "Unknown dispatch error")[:1000]
        self.provider_status = provider_status
        self.updated_at = datetime.now(UTC)
