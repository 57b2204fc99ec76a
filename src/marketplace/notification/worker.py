"""Notification worker pool — drains the work queue with bounded concurrency.

Each job is handled in three steps: load its record (skipping ones already
SENT, since the queue delivers at least once), make the provider call, then
settle the record. Failures are retried with exponential backoff,

    delay = backoff_base × 2^(attempt − 1)

until ``max_attempts``; the last failure copies the job to the dead-letter
store with its original payload and the reason. A retry that cannot be
queued is dead-lettered right away. When the dead-letter store is down too,
the job is left unacknowledged so the queue hands it out again after
recovery.

Only the provider call leaves the event loop (``asyncio.to_thread``); record
loads and writes stay on the loop's thread.
"""

import asyncio

import structlog

from marketplace.config import get_settings
from marketplace.jobs import get_queue
from marketplace.jobs.job import NotificationJob, next_attempt
from marketplace.jobs.queue import JobQueue, QueueUnavailable
from marketplace.notification.delivery import load_record, send_via_channel, settle

logger = structlog.get_logger(__name__)


class NotificationWorkerPool:
    def __init__(
        self,
        queue: JobQueue | None = None,
        concurrency: int | None = None,
        max_attempts: int | None = None,
        backoff_base_seconds: float | None = None,
    ):
        settings = get_settings()
        self.queue = queue or get_queue()
        self.concurrency = concurrency or settings.notification_concurrency
        self.max_attempts = max_attempts or settings.notification_max_attempts
        self.backoff_base_seconds = (
            backoff_base_seconds if backoff_base_seconds is not None else settings.notification_backoff_seconds
        )

    def backoff_for(self, attempt: int) -> float:
        return self.backoff_base_seconds * (2 ** (attempt - 1))

    # -------------------------------------------------------------------
    # Single job
    # -------------------------------------------------------------------
    def _prepare(self, job: NotificationJob):
        """Return the record to deliver, or None when the job needs no send."""
        record = load_record(job.record_id)
        if record is None:
            logger.error("Notification record missing, dead-lettering job", record_id=job.record_id)
            self.queue.dead_letter(job, "Notification record not found")
            return None
        if record.is_sent:
            logger.info("Notification already sent, skipping redelivery", record_id=job.record_id)
            return None
        return record

    def _finish(self, job: NotificationJob, record, result: dict) -> bool:
        sent = settle(record, result)
        if sent:
            return True

        reason = record.last_error or "Unknown dispatch error"
        if job.attempt >= self.max_attempts:
            logger.error(
                "Notification exhausted retries, moved to dead letter",
                record_id=job.record_id,
                attempts=job.attempt,
                reason=reason,
            )
            self.queue.dead_letter(job, reason)
        else:
            self._schedule_retry(job, reason)
        return False

    def _schedule_retry(self, job: NotificationJob, reason: str) -> None:
        delay = self.backoff_for(job.attempt)
        try:
            self.queue.enqueue(next_attempt(job), delay_seconds=delay)
        except QueueUnavailable as exc:
            logger.error("Notification retry could not be queued", record_id=job.record_id, error=str(exc))
            self.queue.dead_letter(job, f"{reason} (retry not queued: {exc})")
            return
        logger.info("Notification retry scheduled", record_id=job.record_id, attempt=job.attempt + 1, delay=delay)

    def _crashed(self, job: NotificationJob, exc: Exception) -> bool:
        logger.error("Notification job crashed", record_id=job.record_id, error=str(exc))
        try:
            self.queue.dead_letter(job, f"Worker error: {exc}")
        except QueueUnavailable:
            logger.error("Dead letter store unavailable, job left unacknowledged", record_id=job.record_id)
            return False
        self.queue.ack(job)
        return False

    def process(self, job: NotificationJob) -> bool:
        """Handle one job synchronously. True when the message was sent."""
        try:
            record = self._prepare(job)
            sent = record is not None and self._finish(job, record, send_via_channel(job))
        except QueueUnavailable as exc:
            logger.error("Queue unavailable, job left unacknowledged", record_id=job.record_id, error=str(exc))
            return False
        except Exception as exc:
            return self._crashed(job, exc)
        self.queue.ack(job)
        return sent

    async def process_async(self, job: NotificationJob, semaphore: asyncio.Semaphore) -> bool:
        async with semaphore:
            try:
                record = self._prepare(job)
                if record is None:
                    sent = False
                else:
                    result = await asyncio.to_thread(send_via_channel, job)
                    sent = self._finish(job, record, result)
            except QueueUnavailable as exc:
                logger.error("Queue unavailable, job left unacknowledged", record_id=job.record_id, error=str(exc))
                return False
            except Exception as exc:
                return self._crashed(job, exc)
            self.queue.ack(job)
            return sent

    # -------------------------------------------------------------------
    # Pool
    # -------------------------------------------------------------------
    async def drain(self) -> int:
        """Process every job that is ready now, including retries that become ready meanwhile.

        Returns the number of jobs handled.
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        handled = 0
        while True:
            batch = []
            job = self.queue.dequeue()
            while job is not None:
                batch.append(job)
                job = self.queue.dequeue()
            if not batch:
                return handled
            await asyncio.gather(*(self.process_async(job, semaphore) for job in batch))
            handled += len(batch)

    async def run(self, stop_event: asyncio.Event, poll_interval: float = 1.0) -> None:
        """Long-running loop for the worker process."""
        logger.info("Notification worker started", concurrency=self.concurrency, max_attempts=self.max_attempts)
        try:
            self.queue.recover_stale()
        except QueueUnavailable as exc:
            logger.error("Could not recover unacknowledged jobs", error=str(exc))
        while not stop_event.is_set():
            try:
                await self.drain()
            except Exception as exc:
                logger.error("Notification worker loop error", error=str(exc))
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=poll_interval)
            except TimeoutError:
                pass
        logger.info("Notification worker stopped")
