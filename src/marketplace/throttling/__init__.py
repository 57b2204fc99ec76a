"""Expiring store registry.

get_store() returns a RedisExpiringStore when a Redis URL is configured and
an InMemoryExpiringStore otherwise. set_store() / reset_store() let tests
install a store with a controllable clock.
"""

from marketplace.config import get_settings
from marketplace.throttling.store import ExpiringStore, InMemoryExpiringStore, RedisExpiringStore

_current_store: ExpiringStore | None = None


def get_store() -> ExpiringStore:
    global _current_store
    if _current_store is None:
        redis_url = get_settings().redis_url
        _current_store = RedisExpiringStore.from_url(redis_url) if redis_url else InMemoryExpiringStore()
    return _current_store


def set_store(store: ExpiringStore) -> None:
    global _current_store
    _current_store = store


def reset_store() -> None:
    global _current_store
    _current_store = None
