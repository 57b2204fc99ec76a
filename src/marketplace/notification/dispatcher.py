"""Notification dispatcher — the fire-and-forget entry point for transactional messages.

Protocol for every send:
1. persist a NotificationRecord in PENDING (write-ahead, before any network call)
2. enqueue a job referencing the record for the worker pool
3. if the queue is unreachable, deliver synchronously and update the record directly

``send`` never raises. A notification problem must not fail the order,
payment or status change that triggered it.
"""

import structlog
from protean.utils.globals import current_domain

from marketplace.jobs import get_queue
from marketplace.jobs.job import ChatJob, Correlation, SmsJob
from marketplace.jobs.queue import JobQueue, QueueUnavailable
from marketplace.notification.delivery import send_via_channel, settle
from marketplace.notification.record import NotificationChannel, NotificationRecord, NotificationTarget

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    def __init__(self, queue: JobQueue | None = None):
        self._queue = queue

    @property
    def queue(self) -> JobQueue:
        return self._queue or get_queue()

    def send(
        self,
        channel: str,
        recipient: str,
        message: str,
        correlation: dict | None = None,
        event_name: str | None = None,
        target: str = NotificationTarget.CUSTOMER.value,
        reply_markup: dict | None = None,
    ) -> str | None:
        """Record and queue one message. Returns the record id, or None if even the record could not be written."""
        if not recipient:
            logger.debug("Notification skipped, no recipient", event_name=event_name, channel=channel)
            return None

        try:
            record = NotificationRecord.create(
                channel=channel,
                recipient=recipient,
                message=message,
                event_name=event_name,
                target=target,
                correlation=correlation,
            )
            current_domain.repository_for(NotificationRecord).add(record)
        except Exception as exc:
            logger.error(
                "Failed to persist notification record", event_name=event_name, channel=channel, error=str(exc)
            )
            return None

        job = self._build_job(record, reply_markup)
        try:
            self.queue.enqueue(job)
            logger.debug("Notification queued", record_id=job.record_id, channel=channel, event_name=event_name)
        except QueueUnavailable as exc:
            logger.warning("Notification queue unavailable, sending inline", record_id=job.record_id, error=str(exc))
            self._deliver_inline(record, job)
        return str(record.id)

    @staticmethod
    def _build_job(record: NotificationRecord, reply_markup=None):
        correlation = Correlation(**record.correlation)
        if record.channel == NotificationChannel.CHAT.value:
            return ChatJob(
                record_id=str(record.id),
                recipient=record.recipient,
                message=record.message,
                correlation=correlation,
                target=record.target,
                reply_markup=reply_markup,
            )
        return SmsJob(
            record_id=str(record.id),
            recipient=record.recipient,
            message=record.message,
            correlation=correlation,
        )

    @staticmethod
    def _deliver_inline(record: NotificationRecord, job) -> None:
        try:
            settle(record, send_via_channel(job))
        except Exception as exc:
            logger.error("Inline notification delivery failed", record_id=str(record.id), error=str(exc))


_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _current_dispatcher
    if _current_dispatcher is None:
        _current_dispatcher = NotificationDispatcher()
    return _current_dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    global _current_dispatcher
    _current_dispatcher = dispatcher


def reset_dispatcher() -> None:
    global _current_dispatcher
    _current_dispatcher = None
