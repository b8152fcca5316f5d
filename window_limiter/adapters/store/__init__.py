"""Counter store adapters - abstracts over the shared key-value store."""

from window_limiter.adapters.store.base import ABSENT, NO_EXPIRY, AbstractCounterStore
from window_limiter.adapters.store.factory import create_counter_store
from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.adapters.store.redis_store import RedisCounterStore

__all__ = [
    "ABSENT",
    "NO_EXPIRY",
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
