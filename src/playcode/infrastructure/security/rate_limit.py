from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, TypedDict


class RateLimitEntry(TypedDict):
    count: int
    reset_time: float


class RateLimitStore(Protocol):
    def get(self, key: str) -> Optional[RateLimitEntry]:
        ...

    def set(self, key: str, value: RateLimitEntry) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryRateLimitStore:
    """Process-local store; swap for a shared backend when running several workers."""

    def __init__(self) -> None:
        self._data: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._data.get(key)
            return dict(entry) if entry else None  # type: ignore[return-value]

    def set(self, key: str, value: RateLimitEntry) -> None:
        with self._lock:
            self._data[key] = dict(value)  # type: ignore[assignment]

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def cleanup(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        with self._lock:
            expired = [k for k, v in self._data.items() if now > v["reset_time"]]
            for k in expired:
                del self._data[k]
        return len(expired)


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    window_seconds: float
    max_requests: int


CONTACT_PRODUCTION = RateLimitPolicy("contact", 15 * 60, 3)
CONTACT_DEVELOPMENT = RateLimitPolicy("contact", 5 * 60, 10)
ANALYTICS = RateLimitPolicy("analytics", 60, 100)
CHATBOT = RateLimitPolicy("chatbot", 5 * 60, 20)
CRM_WEBHOOK = RateLimitPolicy("crm_webhook", 60, 100)


class RateLimiter:
    """
    Fixed-window counter per identifier.

    The first hit opens a window; once `max_requests` hits are counted the
    identifier stays limited until the window resets. Stores that support
    `cleanup` are swept of expired windows at most once per window.
    """

    def __init__(self, store: RateLimitStore, window_seconds: float, max_requests: int):
        self.store = store
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._next_cleanup: Optional[float] = None

    @classmethod
    def from_policy(cls, policy: RateLimitPolicy, store: Optional[RateLimitStore] = None) -> "RateLimiter":
        """Each policy counts in its own store unless one is given."""
        return cls(store or MemoryRateLimitStore(), policy.window_seconds, policy.max_requests)

    @staticmethod
    def _key(identifier: str) -> str:
        return f"rate_limit:{identifier}"

    def _maybe_cleanup(self, now: float) -> None:
        cleanup = getattr(self.store, "cleanup", None)
        if cleanup is None:
            return
        if self._next_cleanup is None:
            self._next_cleanup = now + self.window_seconds
        elif now >= self._next_cleanup:
            cleanup(now)
            self._next_cleanup = now + self.window_seconds

    def is_rate_limited(self, identifier: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        self._maybe_cleanup(now)
        key = self._key(identifier)
        existing = self.store.get(key)

        if existing is None or now > existing["reset_time"]:
            self.store.set(key, {"count": 1, "reset_time": now + self.window_seconds})
            return False

        if existing["count"] >= self.max_requests:
            return True

        self.store.set(key, {"count": existing["count"] + 1, "reset_time": existing["reset_time"]})
        return False

    def reset(self, identifier: str) -> None:
        self.store.delete(self._key(identifier))
