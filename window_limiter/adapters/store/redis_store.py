"""Redis-backed counter store using the redis-py asyncio client.

Each primitive maps to a single Redis command, which Redis executes
atomically:

- create_if_absent -> SET key value PX ttl NX
- increment        -> INCR key
- remaining_lifetime -> PTTL key (-1 no expiry, -2 absent)
- set_lifetime     -> PEXPIRE key ttl
"""

from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.core.errors import StoreOperationError
from window_limiter.core.logging import hash_key

logger = logging.getLogger(__name__)


class RedisCounterStore(AbstractCounterStore):
    """Counter store shared by every process pointing at the same Redis."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisCounterStore":
        """Build a store from a Redis URL (e.g. ``redis://localhost:6379/0``)."""
        return cls(Redis.from_url(url, **kwargs))

    def _failure(self, operation: str, key: str, exc: Exception) -> StoreOperationError:
        logger.error(
            "store.operation_failed",
            extra={
                "backend": "redis",
                "operation": operation,
                "key_hash": hash_key(key),
                "error_type": type(exc).__name__,
            },
        )
        return StoreOperationError(
            code="store_operation_failed",
            message=f"Redis {operation} failed: {exc}",
            details={"backend": "redis", "operation": operation},
        )

    async def create_if_absent(self, key: str, initial_value: int, ttl_millis: int) -> bool:
        try:
            created = await self._client.set(key, initial_value, px=ttl_millis, nx=True)
        except RedisError as exc:
            raise self._failure("SET", key, exc) from exc
        return bool(created)

    async def increment(self, key: str) -> int:
        try:
            return int(await self._client.incr(key))
        except RedisError as exc:
            raise self._failure("INCR", key, exc) from exc

    async def remaining_lifetime(self, key: str) -> int:
        try:
            return int(await self._client.pttl(key))
        except RedisError as exc:
            raise self._failure("PTTL", key, exc) from exc

    async def set_lifetime(self, key: str, ttl_millis: int) -> bool:
        try:
            return bool(await self._client.pexpire(key, ttl_millis))
        except RedisError as exc:
            raise self._failure("PEXPIRE", key, exc) from exc

    async def close(self) -> None:
        await self._client.aclose()
