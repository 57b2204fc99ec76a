"""Fixed-window rate limiting per logical key. Excess attempts are rejected, never queued."""

import structlog

from marketplace.errors import RateLimitExceeded
from marketplace.throttling.store import ExpiringStore

logger = structlog.get_logger(__name__)


class FixedWindowRateLimiter:
    def __init__(self, store: ExpiringStore, prefix: str = "ratelimit"):
        self._store = store
        self._prefix = prefix

    def hit(self, key: str, limit: int, window_seconds: int) -> int:
        """Count one attempt for ``key``; returns the attempts left in this window."""
        count, reset_in = self._store.increment(f"{self._prefix}:{key}", window_seconds)
        if count > limit:
            logger.warning("Rate limit exceeded", key=key, limit=limit, retry_after=reset_in)
            raise RateLimitExceeded(
                "Too many requests, try again later",
                retry_after=reset_in,
                key=key,
            )
        return limit - count
