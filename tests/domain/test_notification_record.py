"""Tests for NotificationRecord status tracking."""

import pytest
from protean.exceptions import ValidationError

from marketplace.notification.record import NotificationChannel, NotificationRecord, NotificationStatus


def _record():
    return NotificationRecord.create(
        channel=NotificationChannel.SMS.value,
        recipient="09120000001",
        message="Your order is on its way",
        event_name="order_progress",
        correlation={"order_id": "order-1", "user_id": "cust-1"},
    )


class TestNotificationRecord:
    def test_created_pending_with_no_attempts(self):
        record = _record()
        assert record.status == NotificationStatus.PENDING.value
        assert record.attempts == 0
        assert record.correlation == {"order_id": "order-1", "user_id": "cust-1", "vendor_id": None}

    def test_mark_sent(self):
        record = _record()
        record.mark_sent(provider_message_id="msg-1")

        assert record.is_sent is True
        assert record.attempts == 1
        assert record.provider_message_id == "msg-1"
        assert record.sent_at is not None

    def test_failures_accumulate_attempts(self):
        record = _record()
        record.mark_failed("timeout")
        record.mark_failed("timeout again")

        assert record.status == NotificationStatus.FAILED.value
        assert record.attempts == 2
        assert record.last_error == "timeout again"

    def test_retry_success_clears_error(self):
        record = _record()
        record.mark_failed("timeout")
        record.mark_sent(provider_message_id="msg-2")

        assert record.attempts == 2
        assert record.last_error is None

    def test_sent_is_terminal(self):
        record = _record()
        record.mark_sent()
        with pytest.raises(ValidationError):
            record.mark_failed("too late")
