"""Expiring key store — the short-TTL state behind replay guards, rate limits and chat sessions.

Two adapters behind one port:
- InMemoryExpiringStore for development, tests and single-process deployments
- RedisExpiringStore when DISHDASH_REDIS_URL is set, so every API worker
  shares the same replay keys and counters
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis


class ExpiringStore(ABC):
    @abstractmethod
    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` unless ``key`` is live. True when this call claimed the key."""
        ...

    @abstractmethod
    def increment(self, key: str, ttl_seconds: int) -> tuple[int, int]:
        """Add one to a counter, starting its TTL on first use.

        Returns ``(count, seconds_until_reset)``.
        """
        ...

    @abstractmethod
    def get(self, key: str) -> str | None: ...

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def evict_expired(self) -> int:
        """Drop expired keys. Backends with native expiry have nothing to do."""
        return 0

    def get_json(self, key: str):
        raw = self.get(key)
        return json.loads(raw) if raw is not None else None

    def set_json(self, key: str, value, ttl_seconds: int) -> None:
        self.set(key, json.dumps(value), ttl_seconds)


class InMemoryExpiringStore(ExpiringStore):
    """Dict of (value, expires_at). Writes sweep expired keys every ``sweep_interval`` seconds."""

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 60.0):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()
        self.sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def _evict_locked(self, now: float) -> int:
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _store(self, key: str, value: str, expires_at: float) -> None:
        now = self._clock()
        if now >= self._next_sweep:
            self._evict_locked(now)
            self._next_sweep = now + self.sweep_interval
        self._entries[key] = (value, expires_at)

    def _live(self, key: str) -> tuple[str, float] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    def set_if_absent(self, key, value, ttl_seconds):
        with self._lock:
            if self._live(key) is not None:
                return False
            self._store(key, value, self._clock() + ttl_seconds)
            return True

    def increment(self, key, ttl_seconds):
        with self._lock:
            entry = self._live(key)
            if entry is None:
                expires_at = self._clock() + ttl_seconds
                count = 1
            else:
                count = int(entry[0]) + 1
                expires_at = entry[1]
            self._store(key, str(count), expires_at)
            return count, max(0, int(expires_at - self._clock()))

    def get(self, key):
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    def set(self, key, value, ttl_seconds):
        with self._lock:
            self._store(key, value, self._clock() + ttl_seconds)

    def delete(self, key):
        with self._lock:
            self._entries.pop(key, None)

    def evict_expired(self) -> int:
        """Drop every expired key and return how many were removed."""
        with self._lock:
            return self._evict_locked(self._clock())

    def __len__(self):
        return len(self._entries)


class RedisExpiringStore(ExpiringStore):
    def __init__(self, client: redis.Redis, prefix: str = "dishdash:"):
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisExpiringStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def set_if_absent(self, key, value, ttl_seconds):
        return bool(self._client.set(self._key(key), value, nx=True, ex=ttl_seconds))

    def increment(self, key, ttl_seconds):
        full_key = self._key(key)
        pipe = self._client.pipeline()
        pipe.incr(full_key)
        pipe.ttl(full_key)
        count, ttl = pipe.execute()
        if ttl is None or ttl < 0:
            self._client.expire(full_key, ttl_seconds)
            ttl = ttl_seconds
        return int(count), int(ttl)

    def get(self, key):
        return self._client.get(self._key(key))

    def set(self, key, value, ttl_seconds):
        self._client.set(self._key(key), value, ex=ttl_seconds)

    def delete(self, key):
        self._client.delete(self._key(key))
