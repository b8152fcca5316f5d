"""Shared-state fixed-window rate limiter."""

from window_limiter.adapters.store import (
    ABSENT,
    NO_EXPIRY,
    AbstractCounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
)
from window_limiter.core.errors import (
    AppError,
    ConfigurationError,
    InvalidKeyError,
    StoreOperationError,
    WindowVanishedError,
)
from window_limiter.services.decision import Decision
from window_limiter.services.limiter import (
    Limiter,
    LimiterDefaults,
    create_limiter,
    get_global_defaults,
    reset_global_defaults,
    set_global_defaults,
)

__all__ = [
    "ABSENT",
    "NO_EXPIRY",
    "AbstractCounterStore",
    "AppError",
    "ConfigurationError",
    "Decision",
    "InMemoryCounterStore",
    "InvalidKeyError",
    "Limiter",
    "LimiterDefaults",
    "RedisCounterStore",
    "StoreOperationError",
    "WindowVanishedError",
    "create_limiter",
    "get_global_defaults",
    "reset_global_defaults",
    "set_global_defaults",
]
