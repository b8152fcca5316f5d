"""Limiter facade: construction, defaults, and the check pipeline.

``check`` runs key codec -> window tracker -> decision policy. It has one
asynchronous core; the callback form is a thin adapter scheduling that core
as a task on the running loop.

Example:
    >>> store = InMemoryCounterStore()
    >>> limiter = create_limiter("login", store, limit=5, period=60_000)
    >>> decision = await limiter.check(["alice", "web"])
    >>> decision.remaining
    4
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.core.errors import ConfigurationError
from window_limiter.core.logging import hash_key
from window_limiter.services.decision import Decision, DecisionPolicy, Sleeper
from window_limiter.services.key_codec import build_key, build_prefix, to_identity
from window_limiter.services.window_tracker import WindowTracker

logger = logging.getLogger(__name__)

CheckCallback = Callable[..., Any]


@dataclass(frozen=True)
class LimiterDefaults:
    """Option values used when ``create_limiter`` is not given one explicitly.

    ``period`` and ``delay`` are milliseconds; ``delay=0`` rejects at the limit.
    """

    limit: int = 10
    period: int = 60_000
    delay: int = 0
    namespace: str | int | None = ""
    store: AbstractCounterStore | None = None


_global_defaults = LimiterDefaults()


def get_global_defaults() -> LimiterDefaults:
    return _global_defaults


def set_global_defaults(**options: Any) -> LimiterDefaults:
    """Merge ``options`` over the process-wide defaults.

    Only limiters created afterwards see the new values.

    Raises:
        ConfigurationError: If an unknown option name is passed.
    """
    global _global_defaults

    known = {f.name for f in dataclasses.fields(LimiterDefaults)}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(
            code="limiter_unknown_option",
            message=f"Unknown limiter option(s): {', '.join(unknown)}",
            details={"field": unknown[0]},
        )
    _global_defaults = dataclasses.replace(_global_defaults, **options)
    return _global_defaults


def reset_global_defaults() -> None:
    """Restore the built-in defaults."""
    global _global_defaults
    _global_defaults = LimiterDefaults()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class LimiterOptions:
    """Resolved, validated options of one limiter."""

    name: str | int
    namespace: str | int | None
    limit: int
    period: int
    delay: int
    store: AbstractCounterStore

    def __post_init__(self) -> None:
        if not isinstance(self.store, AbstractCounterStore):
            raise ConfigurationError(
                code="limiter_missing_store",
                message="counter store is not defined (options.store)",
                details={"field": "store", "value_type": type(self.store).__name__},
            )
        if not (_is_int(self.period) and self.period > 0):
            raise ConfigurationError(
                code="limiter_invalid_period",
                message="period must be greater than 0 (options.period)",
                details={"field": "period"},
            )
        if not (_is_int(self.limit) and self.limit > 0):
            raise ConfigurationError(
                code="limiter_invalid_limit",
                message="limit must be greater than 0 (options.limit)",
                details={"field": "limit"},
            )
        if not (_is_int(self.delay) and self.delay >= 0):
            raise ConfigurationError(
                code="limiter_invalid_delay",
                message="delay must be greater or equal to 0 (options.delay)",
                details={"field": "delay"},
            )


class Limiter:
    """Fixed-window limiter bound to one name and one counter store."""

    def __init__(self, options: LimiterOptions, *, sleep: Sleeper = asyncio.sleep) -> None:
        self.options = options
        self.prefix = build_prefix(options.name, options.namespace)
        self._tracker = WindowTracker(options.store, options.period)
        self._policy = DecisionPolicy(options.limit, options.delay, sleep=sleep)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        o = self.options
        return f"Limiter(prefix={self.prefix!r}, limit={o.limit}, period={o.period}, delay={o.delay})"

    def key_for(self, key: Any) -> str:
        """Build the window key for a caller identity (raises InvalidKeyError)."""
        return build_key(self.prefix, to_identity(key))

    async def decide(self, key: Any) -> tuple[str, Decision]:
        """Run the pipeline once; returns the window key with the decision."""
        window_key = self.key_for(key)
        state = await self._tracker.trial(window_key)
        decision = await self._policy.decide(state)
        if decision.remaining < 0 and decision.uses_delay:
            logger.info(
                "rate_limit.throttled",
                extra={
                    "key_hash": hash_key(window_key),
                    "limit": decision.limit,
                    "remaining": decision.remaining,
                    "wait_ms": self._policy.wait_for(decision.remaining),
                },
            )
        return window_key, decision

    async def _run(self, key: Any) -> Decision:
        _, decision = await self.decide(key)
        return decision

    def check(self, key: Any, callback: CheckCallback | None = None):
        """Count a trial for ``key`` and decide.

        Args:
            key: A token (str/int) or a non-empty sequence of tokens.
            callback: Optional ``callback(error, limit, remaining, reset,
                uses_delay)``. When given, the check is scheduled on the running
                loop and the task is returned; errors go to ``callback(error)``.

        Returns:
            An awaitable resolving to a Decision, or the scheduled task when a
            callback is given.
        """
        if callback is None:
            return self._run(key)

        task = asyncio.get_running_loop().create_task(self._run(key))
        task.add_done_callback(partial(_deliver, callback))
        return task


def _deliver(callback: CheckCallback, task: asyncio.Task) -> None:
    if task.cancelled():
        callback(asyncio.CancelledError(), None, None, None, None)
        return
    error = task.exception()
    if error is not None:
        callback(error, None, None, None, None)
        return
    callback(None, *task.result().as_tuple())


def create_limiter(
    name: str | int,
    store: AbstractCounterStore | None = None,
    *,
    limit: int | None = None,
    period: int | None = None,
    delay: int | None = None,
    namespace: str | int | None = None,
    defaults: LimiterDefaults | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> Limiter:
    """Create a limiter, filling unspecified options from defaults.

    Args:
        name: Limiter name (alphanumeric, '.', '_', '-').
        store: Counter store shared by every limiter instance that must agree.
        limit: Max trials per window.
        period: Window length in milliseconds.
        delay: Throttle delay per excess trial in milliseconds (0 rejects).
        namespace: Optional key prefix.
        defaults: Explicit defaults object; the process-wide one if omitted.
        sleep: Coroutine used to suspend throttled callers.

    Raises:
        ConfigurationError: On any invalid option.
    """
    base = defaults or get_global_defaults()

    def pick(value: Any, fallback: Any) -> Any:
        return fallback if value is None else value

    options = LimiterOptions(
        name=name,
        namespace=pick(namespace, base.namespace),
        limit=pick(limit, base.limit),
        period=pick(period, base.period),
        delay=pick(delay, base.delay),
        store=pick(store, base.store),
    )
    return Limiter(options, sleep=sleep)
