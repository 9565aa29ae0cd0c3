from __future__ import annotations

from playcode.infrastructure.security.rate_limit import (
    CONTACT_PRODUCTION,
    MemoryRateLimitStore,
    RateLimiter,
)


def test_fixed_window_counts_then_limits():
    limiter = RateLimiter(MemoryRateLimitStore(), window_seconds=60, max_requests=3)

    assert [limiter.is_rate_limited("1.2.3.4", now=0) for _ in range(3)] == [False, False, False]
    assert limiter.is_rate_limited("1.2.3.4", now=1) is True
    assert limiter.is_rate_limited("1.2.3.4", now=60) is True


def test_window_resets():
    limiter = RateLimiter(MemoryRateLimitStore(), window_seconds=60, max_requests=1)
    assert limiter.is_rate_limited("ip", now=0) is False
    assert limiter.is_rate_limited("ip", now=30) is True
    assert limiter.is_rate_limited("ip", now=61) is False


def test_identifiers_are_independent():
    limiter = RateLimiter(MemoryRateLimitStore(), window_seconds=60, max_requests=1)
    assert limiter.is_rate_limited("a", now=0) is False
    assert limiter.is_rate_limited("b", now=0) is False
    assert limiter.is_rate_limited("a", now=0) is True


def test_policy_limiter_keys_by_identifier():
    store = MemoryRateLimitStore()
    contact = RateLimiter.from_policy(CONTACT_PRODUCTION, store)

    for _ in range(3):
        assert contact.is_rate_limited("ip", now=0) is False
    assert contact.is_rate_limited("ip", now=0) is True
    assert store.get("rate_limit:ip")["count"] == 3
    assert RateLimiter.from_policy(CONTACT_PRODUCTION).store is not store


def test_expired_windows_are_swept():
    store = MemoryRateLimitStore()
    limiter = RateLimiter(store, window_seconds=10, max_requests=1)
    for n in range(5):
        limiter.is_rate_limited(f"visitor-{n}", now=0)
    assert store.get("rate_limit:visitor-4") is not None

    limiter.is_rate_limited("late", now=11)
    assert all(store.get(f"rate_limit:visitor-{n}") is None for n in range(5))
    assert store.get("rate_limit:late")["count"] == 1


def test_reset_and_cleanup():
    store = MemoryRateLimitStore()
    limiter = RateLimiter(store, window_seconds=10, max_requests=1)
    limiter.is_rate_limited("a", now=0)
    limiter.is_rate_limited("b", now=0)
    limiter.reset("a")
    assert limiter.is_rate_limited("a", now=1) is False

    assert store.cleanup(now=100) == 2
    assert store.get("rate_limit:b") is None
