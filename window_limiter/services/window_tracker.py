"""Window tracker: counts a trial and reads the window's remaining lifetime.

Two steps per call, both against the shared store:

Step A (trial)
    ``create_if_absent(key, 1, period)`` is the single decision point between
    "new window" (count is 1) and "existing window" (``increment``).

Step B (lifetime)
    ``remaining_lifetime(key)``. A key without expiry (written by something
    outside this protocol) gets the period applied and reports the full period.
    A key that is gone, or cannot be repaired, raises ``WindowVanishedError``
    instead of silently starting a new window, which would hand the caller a
    fresh quota.

Nothing is cached locally and nothing is retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from window_limiter.adapters.store.base import NO_EXPIRY, AbstractCounterStore
from window_limiter.core.errors import WindowVanishedError
from window_limiter.core.logging import hash_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowState:
    """Counter value and milliseconds left in the window after a trial."""

    count: int
    reset: int


class WindowTracker:
    """Runs the trial/lifetime protocol for window keys of one period."""

    def __init__(self, store: AbstractCounterStore, period: int) -> None:
        self._store = store
        self._period = period

    @property
    def period(self) -> int:
        return self._period

    async def trial(self, key: str) -> WindowState:
        """Count one trial against ``key``.

        Args:
            key: Fully built window key.

        Returns:
            WindowState with the new count and the remaining lifetime.

        Raises:
            WindowVanishedError: If the key is absent during Step B.
            StoreOperationError: If a store primitive fails.
        """
        count = await self._count(key)
        reset = await self._lifetime(key)
        return WindowState(count=count, reset=reset)

    async def _count(self, key: str) -> int:
        if await self._store.create_if_absent(key, 1, self._period):
            return 1
        return await self._store.increment(key)

    async def _lifetime(self, key: str) -> int:
        reset = await self._store.remaining_lifetime(key)
        if reset > 0:
            return reset

        if reset == NO_EXPIRY:
            if await self._store.set_lifetime(key, self._period):
                logger.warning(
                    "window.self_healed",
                    extra={"key_hash": hash_key(key), "period_ms": self._period},
                )
                return self._period
            raise self._vanished(key, reset, "expire_not_applied")

        raise self._vanished(key, reset, "absent")

    def _vanished(self, key: str, reset: int, reason: str) -> WindowVanishedError:
        logger.error(
            "window.vanished",
            extra={"key_hash": hash_key(key), "pttl": reset, "reason": reason},
        )
        return WindowVanishedError(
            code="window_vanished",
            message=f'Key "{key}" does not exist ({reset})',
            details={"key": key, "hint": reason},
        )
