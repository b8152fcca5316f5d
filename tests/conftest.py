"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import of the settings module so
every test runs against the in-memory counter store.
"""

import os
from unittest.mock import Mock

import pytest

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from window_limiter.adapters.store.in_memory import InMemoryCounterStore  # noqa: E402
from window_limiter.services.limiter import reset_global_defaults  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Controllable clock (seconds) for the in-memory store."""
    return Mock(return_value=1000.0)


@pytest.fixture
def store(clock: Mock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)


@pytest.fixture(autouse=True)
def _restore_global_defaults():
    yield
    reset_global_defaults()
