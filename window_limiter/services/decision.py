"""Decision policy: turns a window state into the caller-facing decision."""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from window_limiter.services.window_tracker import WindowState

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Decision:
    """Result of one limiter check.

    Attributes:
        limit: Max trials per window.
        remaining: ``limit - count``; negative once the limit is exceeded.
        reset: Milliseconds until the window closes, after any throttle wait.
        uses_delay: Whether the limiter throttles instead of rejecting.
    """

    limit: int
    remaining: int
    reset: int
    uses_delay: bool

    @property
    def allowed(self) -> bool:
        """Whether the caller may proceed (throttled callers always may)."""
        return self.remaining >= 0 or self.uses_delay

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.reset / 1000)

    def reset_at(self, now: float | None = None) -> int:
        """UNIX epoch seconds when the window resets.

        Args:
            now: Current UNIX time in seconds (defaults to ``time.time()``).
        """
        now = time.time() if now is None else now
        return math.ceil((now * 1000 + self.reset) / 1000)

    def as_tuple(self) -> tuple[int, int, int, bool]:
        return (self.limit, self.remaining, self.reset, self.uses_delay)


class DecisionPolicy:
    """Applies ``limit`` and ``delay`` (milliseconds) to window states."""

    def __init__(self, limit: int, delay: int, *, sleep: Sleeper = asyncio.sleep) -> None:
        self._limit = limit
        self._delay = delay
        self._sleep = sleep

    @property
    def uses_delay(self) -> bool:
        return self._delay > 0

    def wait_for(self, remaining: int) -> int:
        """Milliseconds a throttled caller waits for a given ``remaining``."""
        if not self.uses_delay or remaining >= 0:
            return 0
        return -remaining * self._delay

    async def decide(self, state: WindowState) -> Decision:
        """Build the decision, suspending the caller first when throttled.

        The decision is final once computed: the store is not consulted again
        after the wait.
        """
        remaining = self._limit - state.count
        wait = self.wait_for(remaining)
        if not wait:
            return Decision(self._limit, remaining, state.reset, self.uses_delay)

        await self._sleep(wait / 1000)
        return Decision(self._limit, remaining, max(0, state.reset - wait), True)
