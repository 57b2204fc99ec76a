"""Durable work queue port for notification jobs, with the in-memory adapter.

Queue contract:
- ``enqueue(job, delay_seconds)`` makes the job available after the delay
- ``dequeue()`` hands out the next ready job, or None
- ``ack(job)`` confirms a handed-out job is finished (success, retry or dead letter)
- ``dead_letter(job, reason)`` parks a job that exhausted its attempts
- ``recover_stale()`` puts handed-out jobs whose worker went away back in line
Any backend failure surfaces as QueueUnavailable so callers can fall back to
sending synchronously.
"""

import heapq
import itertools
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime

from marketplace.jobs.job import NotificationJob, job_from_payload, job_to_payload

QUEUE_NAME = "notification-dispatcher"
DEAD_LETTER_QUEUE_NAME = "notification-dead-letter"


class QueueUnavailable(Exception):
    """The queue backend cannot accept or hand out jobs right now."""


def dead_letter_entry(job: NotificationJob, reason: str) -> dict:
    return {
        "payload": job_to_payload(job),
        "failedReason": reason,
        "attemptsMade": job.attempt,
        "deadLetteredAt": datetime.now(UTC).isoformat(),
    }


class JobQueue(ABC):
    name = QUEUE_NAME

    @abstractmethod
    def enqueue(self, job: NotificationJob, delay_seconds: float = 0) -> None: ...

    @abstractmethod
    def dequeue(self) -> NotificationJob | None: ...

    def ack(self, job: NotificationJob) -> None:  # noqa: B027
        """Backends without a processing list have nothing to confirm."""

    def recover_stale(self) -> int:
        """Requeue jobs handed out but never acknowledged. Returns how many."""
        return 0

    @abstractmethod
    def dead_letter(self, job: NotificationJob, reason: str) -> None: ...

    @abstractmethod
    def dead_letters(self) -> list[dict]: ...

    @abstractmethod
    def counts(self) -> dict: ...


class InMemoryJobQueue(JobQueue):
    """Heap ordered by ready time. Process-local, so only for dev and tests."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._heap: list[tuple[float, int, dict]] = []
        self._dead: list[dict] = []
        self._sequence = itertools.count()
        self._in_flight = 0
        self._lock = threading.Lock()
        self.available = True

    def _check_available(self):
        if not self.available:
            raise QueueUnavailable("In-memory queue switched off")

    def enqueue(self, job, delay_seconds=0):
        self._check_available()
        with self._lock:
            ready_at = self._clock() + max(0.0, delay_seconds)
            heapq.heappush(self._heap, (ready_at, next(self._sequence), job_to_payload(job)))

    def dequeue(self):
        self._check_available()
        with self._lock:
            if not self._heap or self._heap[0][0] > self._clock():
                return None
            _, _, payload = heapq.heappop(self._heap)
            self._in_flight += 1
            return job_from_payload(payload)

    def ack(self, job):
        with self._lock:
            self._in_flight = max(0, self._in_flight - 1)

    def next_ready_in(self) -> float | None:
        """Seconds until the earliest job becomes ready, None when empty."""
        with self._lock:
            if not self._heap:
                return None
            return max(0.0, self._heap[0][0] - self._clock())

    def dead_letter(self, job, reason):
        with self._lock:
            self._dead.append(dead_letter_entry(job, reason))

    def dead_letters(self):
        with self._lock:
            return list(self._dead)

    def counts(self):
        with self._lock:
            now = self._clock()
            ready = sum(1 for ready_at, _, _ in self._heap if ready_at <= now)
            return {
                "waiting": ready,
                "delayed": len(self._heap) - ready,
                "active": self._in_flight,
                "failed": len(self._dead),
            }

    def clear(self):
        with self._lock:
            self._heap.clear()
            self._dead.clear()
            self._in_flight = 0
        self.available = True
