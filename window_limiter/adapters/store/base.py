"""Counter store interface.

The window tracker depends on this abstraction (not on a concrete client) so
any key-value store offering the four primitives below can back a limiter.
Redis-compatible semantics satisfy it exactly; an in-memory implementation is
provided for single-process use and tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

# Sentinels returned by ``remaining_lifetime`` (same values as Redis PTTL)
NO_EXPIRY = -1
ABSENT = -2


class AbstractCounterStore(ABC):
    """Interface for shared window-counter stores.

    Every method must be atomic with respect to other callers of the same key.
    Implementations surface client failures as ``StoreOperationError``.
    """

    @abstractmethod
    async def create_if_absent(self, key: str, initial_value: int, ttl_millis: int) -> bool:
        """Set ``key`` to ``initial_value`` with a TTL, only if it does not exist.

        Args:
            key: Window key.
            initial_value: Counter value for a fresh window.
            ttl_millis: Lifetime of the new window in milliseconds.

        Returns:
            True if the key was created, False if it already existed.
        """
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically increment the counter at ``key`` and return the new value."""
        raise NotImplementedError

    @abstractmethod
    async def remaining_lifetime(self, key: str) -> int:
        """Return milliseconds until ``key`` expires.

        Returns:
            A positive duration, ``NO_EXPIRY`` when the key exists without a
            TTL, or ``ABSENT`` when the key does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_lifetime(self, key: str, ttl_millis: int) -> bool:
        """Set a TTL on an existing key.

        Returns:
            True if applied, False if the key no longer exists.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources. No-op by default."""
        return None
