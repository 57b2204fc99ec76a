"""One delivery attempt for a notification job.

Shared by the worker pool and by the dispatcher's synchronous fallback:
``send_via_channel`` talks to the provider, ``settle`` writes the outcome
onto the NotificationRecord and emits the audit event.
"""

from typing import assert_never

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.audit import record_safely
from marketplace.channel import get_channel
from marketplace.jobs.job import ChatJob, NotificationJob, SmsJob
from marketplace.notification.record import NotificationRecord

logger = structlog.get_logger(__name__)


def send_via_channel(job: NotificationJob) -> dict:
    """Route the job to its adapter. Adapter exceptions become a failed result."""
    try:
        adapter = get_channel(job.channel.value)
        match job:
            case ChatJob():
                return adapter.send(
                    chat_id=job.recipient,
                    text=job.message,
                    reply_markup=job.reply_markup,
                    target=job.target,
                )
            case SmsJob():
                return adapter.send(to=job.recipient, body=job.message)
            case _:
                assert_never(job)
    except Exception as exc:
        logger.error("Channel adapter raised", record_id=job.record_id, channel=job.channel.value, error=str(exc))
        return {"message_id": None, "status": "failed", "error": str(exc)}


def load_record(record_id) -> NotificationRecord | None:
    try:
        return current_domain.repository_for(NotificationRecord).get(record_id)
    except ObjectNotFoundError:
        return None


def settle(record: NotificationRecord, result: dict) -> bool:
    """Persist the attempt's outcome on the record. True when the message went out."""
    sent = result.get("status") == "sent"
    if sent:
        record.mark_sent(provider_message_id=result.get("message_id"), provider_status=result.get("status"))
    else:
        record.mark_failed(result.get("error") or "Unknown dispatch error", provider_status=result.get("status"))
    current_domain.repository_for(NotificationRecord).add(record)

    payload = {
        "record_id": str(record.id),
        "channel": record.channel,
        "notification_event": record.event_name,
        "attempts": record.attempts,
        **{key: value for key, value in record.correlation.items() if value},
    }
    if sent:
        logger.info("Notification sent", **payload)
        record_safely("notification_sent", payload)
    else:
        logger.warning("Notification failed", error=record.last_error, **payload)
        record_safely("notification_failed", {**payload, "error": record.last_error})
    return sent
