"""Tests for the expiring store and the fixed-window rate limiter."""

import pytest

from marketplace.errors import RateLimitExceeded
from marketplace.throttling.rate_limit import FixedWindowRateLimiter
from marketplace.throttling.store import InMemoryExpiringStore


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestInMemoryExpiringStore:
    def test_set_if_absent_claims_once(self):
        store = InMemoryExpiringStore(clock=FakeClock())
        assert store.set_if_absent("k", "1", 60) is True
        assert store.set_if_absent("k", "2", 60) is False
        assert store.get("k") == "1"

    def test_key_expires(self):
        clock = FakeClock()
        store = InMemoryExpiringStore(clock=clock)
        store.set("k", "v", 10)

        clock.advance(10)
        assert store.get("k") is None
        assert store.set_if_absent("k", "again", 10) is True

    def test_increment_keeps_first_window(self):
        clock = FakeClock()
        store = InMemoryExpiringStore(clock=clock)

        assert store.increment("c", 60) == (1, 60)
        clock.advance(15)
        assert store.increment("c", 60) == (2, 45)

    def test_json_helpers(self):
        store = InMemoryExpiringStore(clock=FakeClock())
        store.set_json("session", {"order_id": "o-1"}, 60)
        assert store.get_json("session") == {"order_id": "o-1"}
        assert store.get_json("missing") is None

    def test_evict_expired(self):
        clock = FakeClock()
        store = InMemoryExpiringStore(clock=clock)
        store.set("short", "1", 5)
        store.set("long", "1", 500)

        clock.advance(6)
        assert store.evict_expired() == 1
        assert len(store) == 1

    def test_writes_sweep_expired_keys(self):
        clock = FakeClock()
        store = InMemoryExpiringStore(clock=clock, sweep_interval=30)
        for signature in ("a", "b", "c"):
            store.set_if_absent(f"replay:{signature}", "1", 10)

        clock.advance(31)
        store.set_if_absent("replay:d", "1", 10)

        assert len(store) == 1
        assert store.get("replay:d") == "1"

    def test_no_sweep_before_interval(self):
        clock = FakeClock()
        store = InMemoryExpiringStore(clock=clock, sweep_interval=30)
        store.set("short", "1", 5)

        clock.advance(10)
        store.set("other", "1", 60)

        assert len(store) == 2


class TestFixedWindowRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = FixedWindowRateLimiter(InMemoryExpiringStore(clock=FakeClock()))
        assert limiter.hit("pay:u1", 3, 60) == 2
        assert limiter.hit("pay:u1", 3, 60) == 1
        assert limiter.hit("pay:u1", 3, 60) == 0

    def test_rejects_excess_with_retry_after(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(InMemoryExpiringStore(clock=clock))
        limiter.hit("pay:u1", 1, 60)
        clock.advance(20)

        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.hit("pay:u1", 1, 60)
        assert exc_info.value.retry_after == 40

    def test_window_resets(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(InMemoryExpiringStore(clock=clock))
        limiter.hit("pay:u1", 1, 60)

        clock.advance(60)
        assert limiter.hit("pay:u1", 1, 60) == 0

    def test_keys_are_independent(self):
        limiter = FixedWindowRateLimiter(InMemoryExpiringStore(clock=FakeClock()))
        limiter.hit("pay:u1", 1, 60)
        assert limiter.hit("pay:u2", 1, 60) == 0
