"""Factory for counter store instances."""

from __future__ import annotations

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.adapters.store.redis_store import RedisCounterStore
from window_limiter.core.config import StoreSettings, settings
from window_limiter.core.errors import ConfigurationError


def create_counter_store(store_settings: StoreSettings | None = None) -> AbstractCounterStore:
    """Instantiate the counter store selected by configuration.

    Args:
        store_settings: Optional store settings; defaults to global settings.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "memory":
        return InMemoryCounterStore()

    if backend == "redis":
        if not cfg.redis_url:
            raise ConfigurationError(
                code="store_missing_redis_url",
                message="Redis backend requires STORE_REDIS_URL",
                details={"backend": backend, "field": "redis_url"},
            )
        return RedisCounterStore.from_url(cfg.redis_url)

    raise ConfigurationError(
        code="store_unknown_backend",
        message=f"Unknown counter store backend: '{backend}'. Supported backends: memory, redis",
        details={"backend": backend, "field": "backend"},
    )
