"""Redis-backed notification queue.

Layout, all under the queue name prefix:
- ``<name>:ready``       list of payloads ready to run
- ``<name>:delayed``     sorted set of payloads scored by ready-at epoch seconds
- ``<name>:processing``  list of payloads handed out but not acknowledged yet
- ``<name>:leases``      sorted set of handed-out payloads scored by lease expiry
- ``notification-dead-letter``  list of dead-letter entries

A job whose lease runs out before ``ack`` (the worker died or hung) goes back
to ``:ready``, so every job is delivered at least once.
"""

import json
import time

import redis
import structlog

from marketplace.jobs.job import job_from_payload, job_to_payload
from marketplace.jobs.queue import (
    DEAD_LETTER_QUEUE_NAME,
    QUEUE_NAME,
    JobQueue,
    QueueUnavailable,
    dead_letter_entry,
)

logger = structlog.get_logger(__name__)

DEFAULT_VISIBILITY_TIMEOUT = 300


def _encode(job) -> str:
    return json.dumps(job_to_payload(job), sort_keys=True)


class RedisJobQueue(JobQueue):
    def __init__(
        self,
        client: redis.Redis,
        name: str = QUEUE_NAME,
        clock=time.time,
        visibility_timeout: float = DEFAULT_VISIBILITY_TIMEOUT,
    ):
        self._client = client
        self.name = name
        self._clock = clock
        self.visibility_timeout = visibility_timeout
        self._ready = f"{name}:ready"
        self._delayed = f"{name}:delayed"
        self._processing = f"{name}:processing"
        self._leases = f"{name}:leases"
        self._dead = DEAD_LETTER_QUEUE_NAME

    @classmethod
    def from_url(cls, url: str) -> "RedisJobQueue":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def enqueue(self, job, delay_seconds=0):
        raw = _encode(job)
        try:
            if delay_seconds > 0:
                self._client.zadd(self._delayed, {raw: self._clock() + delay_seconds})
            else:
                self._client.lpush(self._ready, raw)
        except redis.RedisError as exc:
            raise QueueUnavailable(str(exc)) from exc

    def _promote_due(self):
        due = self._client.zrangebyscore(self._delayed, 0, self._clock())
        for raw in due:
            # Only the worker that removes the entry gets to promote it
            if self._client.zrem(self._delayed, raw):
                self._client.lpush(self._ready, raw)

    def _release(self, raw: str) -> None:
        self._client.lrem(self._processing, 1, raw)
        self._client.lpush(self._ready, raw)

    def _reclaim_expired(self) -> int:
        expired = self._client.zrangebyscore(self._leases, 0, self._clock())
        reclaimed = 0
        for raw in expired:
            if self._client.zrem(self._leases, raw):
                self._release(raw)
                reclaimed += 1
        return reclaimed

    def recover_stale(self) -> int:
        """Return expired and lease-less handed-out jobs to ``:ready``.

        A lease-less entry means its worker died between handing it out and
        taking the lease.
        """
        try:
            reclaimed = self._reclaim_expired()
            for raw in self._client.lrange(self._processing, 0, -1):
                if self._client.zscore(self._leases, raw) is None:
                    self._release(raw)
                    reclaimed += 1
        except redis.RedisError as exc:
            raise QueueUnavailable(str(exc)) from exc
        if reclaimed:
            logger.warning("Recovered unacknowledged notification jobs", count=reclaimed)
        return reclaimed

    def dequeue(self):
        try:
            self._promote_due()
            self._reclaim_expired()
            raw = self._client.lmove(self._ready, self._processing, "RIGHT", "LEFT")
            if raw is None:
                return None
            self._client.zadd(self._leases, {raw: self._clock() + self.visibility_timeout})
        except redis.RedisError as exc:
            raise QueueUnavailable(str(exc)) from exc
        return job_from_payload(json.loads(raw))

    def ack(self, job):
        raw = _encode(job)
        try:
            self._client.zrem(self._leases, raw)
            self._client.lrem(self._processing, 1, raw)
        except redis.RedisError as exc:
            logger.warning("Failed to acknowledge notification job", record_id=job.record_id, error=str(exc))

    def dead_letter(self, job, reason):
        try:
            self._client.lpush(self._dead, json.dumps(dead_letter_entry(job, reason)))
        except redis.RedisError as exc:
            raise QueueUnavailable(str(exc)) from exc

    def dead_letters(self):
        return [json.loads(raw) for raw in self._client.lrange(self._dead, 0, -1)]

    def counts(self):
        return {
            "waiting": self._client.llen(self._ready),
            "delayed": self._client.zcard(self._delayed),
            "active": self._client.llen(self._processing),
            "failed": self._client.llen(self._dead),
        }
