"""Notification work queue registry.

get_queue() returns a RedisJobQueue when DISHDASH_REDIS_URL is set and an
InMemoryJobQueue otherwise. set_queue() / reset_queue() swap it in tests.
"""

from marketplace.config import get_settings
from marketplace.jobs.queue import InMemoryJobQueue, JobQueue
from marketplace.jobs.redis_queue import RedisJobQueue

_current_queue: JobQueue | None = None


def get_queue() -> JobQueue:
    global _current_queue
    if _current_queue is None:
        redis_url = get_settings().redis_url
        _current_queue = RedisJobQueue.from_url(redis_url) if redis_url else InMemoryJobQueue()
    return _current_queue


def set_queue(queue: JobQueue) -> None:
    global _current_queue
    _current_queue = queue


def reset_queue() -> None:
    global _current_queue
    _current_queue = None
