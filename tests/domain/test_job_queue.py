"""Tests for the in-memory notification job queue."""

import pytest

from marketplace.jobs.job import SmsJob
from marketplace.jobs.queue import InMemoryJobQueue, QueueUnavailable


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _job(record_id="rec-1", attempt=1):
    return SmsJob(record_id=record_id, recipient="09120000001", message="Hi", attempt=attempt)


class TestInMemoryJobQueue:
    def test_fifo_for_ready_jobs(self):
        queue = InMemoryJobQueue(clock=FakeClock())
        queue.enqueue(_job("a"))
        queue.enqueue(_job("b"))

        assert queue.dequeue().record_id == "a"
        assert queue.dequeue().record_id == "b"
        assert queue.dequeue() is None

    def test_delayed_job_waits(self):
        clock = FakeClock()
        queue = InMemoryJobQueue(clock=clock)
        queue.enqueue(_job(), delay_seconds=4)

        assert queue.dequeue() is None
        assert queue.next_ready_in() == 4
        assert queue.counts()["delayed"] == 1

        clock.now = 4
        assert queue.dequeue().record_id == "rec-1"

    def test_counts_track_active_and_acked(self):
        queue = InMemoryJobQueue(clock=FakeClock())
        queue.enqueue(_job())
        job = queue.dequeue()
        assert queue.counts() == {"waiting": 0, "delayed": 0, "active": 1, "failed": 0}

        queue.ack(job)
        assert queue.counts()["active"] == 0

    def test_dead_letter_keeps_payload_and_reason(self):
        queue = InMemoryJobQueue(clock=FakeClock())
        queue.dead_letter(_job(attempt=5), "provider down")

        entry = queue.dead_letters()[0]
        assert entry["failedReason"] == "provider down"
        assert entry["attemptsMade"] == 5
        assert entry["payload"]["recordId"] == "rec-1"
        assert queue.counts()["failed"] == 1

    def test_unavailable_queue_raises(self):
        queue = InMemoryJobQueue(clock=FakeClock())
        queue.available = False
        with pytest.raises(QueueUnavailable):
            queue.enqueue(_job())
        with pytest.raises(QueueUnavailable):
            queue.dequeue()

    def test_clear_restores_availability(self):
        queue = InMemoryJobQueue(clock=FakeClock())
        queue.enqueue(_job())
        queue.available = False
        queue.clear()

        assert queue.available is True
        assert queue.dequeue() is None
