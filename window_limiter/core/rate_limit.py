"""Rate limiting dependencies for FastAPI routes.

This module wires limiters into the HTTP layer:

- ``rate_limit(limiter, key)`` builds a dependency for any route. ``key`` is
  a token, a sequence of tokens, or a callable ``(request) -> key`` (sync or
  async).
- ``enforce_rate_limit`` is the settings-driven guard used by the service's
  own routes: keyed by API key when present, else by client IP.

On an allowed (or throttled) decision the route runs and the X-RateLimit-*
headers are attached to its response. A rejected decision raises HTTP 429
with ``Retry-After``. Errors raised by the limiter propagate to the
application's exception handlers without rate-limit headers.
"""

from __future__ import annotations

import hashlib
import inspect
import logging
import re
from typing import Annotated, Any, Awaitable, Callable

from fastapi import Header, HTTPException, Request, Response, status

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.adapters.store.factory import create_counter_store
from window_limiter.core.config import settings
from window_limiter.core.errors import ConfigurationError
from window_limiter.core.logging import hash_key
from window_limiter.services.decision import Decision
from window_limiter.services.limiter import Limiter, create_limiter

logger = logging.getLogger(__name__)

KeyFactory = Callable[[Request], Any]
RateLimitDependency = Callable[..., Awaitable[Decision]]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

_store: AbstractCounterStore | None = None
_store_config: tuple[str, str] | None = None
_limiters: dict[str, Limiter] = {}
_limiters_config: tuple[Any, ...] | None = None


def rate_limit_headers(decision: Decision, *, now: float | None = None) -> dict[str, str]:
    """Build the X-RateLimit-* headers for a decision."""

    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(max(0, decision.remaining)),
        "X-RateLimit-Reset": str(decision.reset_at(now)),
    }


def _apply_decision(
    decision: Decision,
    response: Response,
    *,
    with_headers: bool,
    key_hash: str,
) -> Decision:
    headers = rate_limit_headers(decision) if with_headers else {}

    if decision.allowed:
        response.headers.update(headers)
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": decision.limit,
                "remaining": decision.remaining,
                "reset_ms": decision.reset,
            },
        )
        return decision

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": decision.limit,
            "remaining": decision.remaining,
            "retry_after_s": decision.retry_after_seconds,
        },
    )
    if with_headers:
        headers["Retry-After"] = str(decision.retry_after_seconds)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too Many Requests",
        headers=headers or None,
    )


def _is_key_argument(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    return isinstance(key, (str, int, list, tuple)) or callable(key)


def rate_limit(
    limiter: Limiter,
    key: Any,
    *,
    with_headers: bool = True,
) -> RateLimitDependency:
    """Create a FastAPI dependency enforcing ``limiter`` on a route.

    Args:
        limiter: Limiter to check.
        key: Token, sequence of tokens, or callable producing one from the request.
        with_headers: Whether to emit X-RateLimit-* and Retry-After headers.

    Returns:
        Async dependency returning the Decision for allowed requests.

    Raises:
        ConfigurationError: If ``key`` is not a string, number, sequence or callable.
    """

    if not _is_key_argument(key):
        raise ConfigurationError(
            code="rate_limit_invalid_key",
            message="key is not a string, number, sequence or function",
            details={"field": "key", "value_type": type(key).__name__},
        )

    async def dependency(request: Request, response: Response) -> Decision:
        raw = key(request) if callable(key) else key
        if inspect.isawaitable(raw):
            raw = await raw
        window_key, decision = await limiter.decide(raw)
        return _apply_decision(
            decision,
            response,
            with_headers=with_headers,
            key_hash=hash_key(window_key),
        )

    return dependency


async def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store, rebuilt if store settings change.

    A replaced store is closed before the new one is returned.
    """

    global _store, _store_config

    config = (settings.store.backend, settings.store.redis_url)
    if _store is None or _store_config != config:
        previous = _store
        _store = create_counter_store(settings.store)
        _store_config = config
        if previous is not None:
            await previous.close()
    return _store


async def _get_limiter(role: str) -> Limiter:
    """Return the cached service or guard limiter.

    Limiters are rebuilt when limiter settings (or the store) change, which
    mainly happens in tests.
    """

    global _limiters, _limiters_config

    cfg = settings.limiter
    store = await get_counter_store()
    config = (
        id(store),
        cfg.name,
        cfg.namespace,
        cfg.limit,
        cfg.period_ms,
        cfg.delay_ms,
        cfg.guard_name,
        cfg.guard_limit,
        cfg.guard_period_ms,
    )
    if _limiters_config != config:
        _limiters = {
            "service": create_limiter(
                cfg.name,
                store,
                limit=cfg.limit,
                period=cfg.period_ms,
                delay=cfg.delay_ms,
                namespace=cfg.namespace,
            ),
            "guard": create_limiter(
                cfg.guard_name,
                store,
                limit=cfg.guard_limit,
                period=cfg.guard_period_ms,
                delay=0,
                namespace=cfg.namespace,
            ),
        }
        _limiters_config = config
    return _limiters[role]


async def get_service_limiter() -> Limiter:
    """Limiter answering decision requests for caller-supplied identities."""

    return await _get_limiter("service")


async def get_guard_limiter() -> Limiter:
    """Limiter protecting the service's own routes per client."""

    return await _get_limiter("guard")


def _client_identity(request: Request, x_api_key: str | None) -> tuple[str, str]:
    """Build the guard identity for the current request.

    API keys are hashed so they never become part of a store key; client hosts
    are reduced to key-safe characters (IPv6 colons become dots).
    """

    if x_api_key:
        return ("api_key", hashlib.sha256(x_api_key.encode()).hexdigest()[:32])

    client_host = request.client.host if request.client else "unknown"
    return ("ip", _UNSAFE_CHARS.sub("_", client_host.replace(":", ".")) or "unknown")


async def enforce_rate_limit(
    request: Request,
    response: Response,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> None:
    """FastAPI dependency guarding the service's routes per client.

    Raises:
        HTTPException: 429 Too Many Requests when the client exceeds the guard.
    """

    if not settings.limiter.enabled:
        return

    limiter = await get_guard_limiter()
    identity = _client_identity(request, x_api_key)
    window_key, decision = await limiter.decide(identity)
    _apply_decision(
        decision,
        response,
        with_headers=settings.limiter.include_headers,
        key_hash=hash_key(window_key),
    )
