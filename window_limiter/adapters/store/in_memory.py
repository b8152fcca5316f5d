"""In-memory counter store.

Notes:
- Per-process only: limiters in different processes do not share windows.
- Thread-safe: every primitive runs under a lock, so each one is atomic.
- Expiry is lazy: an expired key is dropped the next time it is touched.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from window_limiter.adapters.store.base import ABSENT, NO_EXPIRY, AbstractCounterStore


@dataclass
class _Entry:
    value: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping windows in a process-local dict.

    Useful for single-worker deployments and for tests; the clock can be
    injected to make expiry deterministic.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning seconds (monotonic by default).
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(size={len(self._entries)})"

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def _expiry(self, ttl_millis: int) -> float:
        return self._clock() + ttl_millis / 1000

    async def create_if_absent(self, key: str, initial_value: int, ttl_millis: int) -> bool:
        with self._lock:
            if self._live_entry_locked(key) is not None:
                return False
            self._entries[key] = _Entry(value=initial_value, expires_at=self._expiry(ttl_millis))
            return True

    async def increment(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                # Same as Redis INCR on a missing key: starts at 0, no TTL.
                entry = _Entry(value=0, expires_at=None)
                self._entries[key] = entry
            entry.value += 1
            return entry.value

    async def remaining_lifetime(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return ABSENT
            if entry.expires_at is None:
                return NO_EXPIRY
            return max(1, math.ceil((entry.expires_at - self._clock()) * 1000))

    async def set_lifetime(self, key: str, ttl_millis: int) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return False
            entry.expires_at = self._expiry(ttl_millis)
            return True

    def set(self, key: str, value: int, *, ttl_millis: int | None = None) -> None:
        """Write a counter directly, bypassing the window protocol.

        Args:
            key: Key to write.
            value: Counter value.
            ttl_millis: Optional lifetime; ``None`` leaves the key without expiry.
        """
        with self._lock:
            expires_at = self._expiry(ttl_millis) if ttl_millis is not None else None
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    def get(self, key: str) -> int | None:
        """Return the current counter value, or None if absent/expired."""
        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry else None

    def delete(self, key: str) -> bool:
        """Remove a key; returns whether it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all keys."""
        with self._lock:
            self._entries.clear()
