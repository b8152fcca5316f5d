"""Tests for the trial/lifetime protocol of the window tracker."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from window_limiter.adapters.store.base import ABSENT, NO_EXPIRY, AbstractCounterStore
from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.core.errors import StoreOperationError, WindowVanishedError
from window_limiter.services.window_tracker import WindowState, WindowTracker


def _mock_store() -> AsyncMock:
    return AsyncMock(spec=AbstractCounterStore)


@pytest.mark.asyncio
async def test_first_trial_creates_window(store) -> None:
    tracker = WindowTracker(store, 5000)

    assert await tracker.trial("k") == WindowState(count=1, reset=5000)


@pytest.mark.asyncio
async def test_following_trials_increment(store, clock) -> None:
    tracker = WindowTracker(store, 5000)
    await tracker.trial("k")

    clock.return_value = 1001.0
    state = await tracker.trial("k")

    assert state == WindowState(count=2, reset=4000)


@pytest.mark.asyncio
async def test_window_restarts_after_expiry(store, clock) -> None:
    tracker = WindowTracker(store, 1000)
    await tracker.trial("k")
    await tracker.trial("k")

    clock.return_value = 1002.0
    assert await tracker.trial("k") == WindowState(count=1, reset=1000)


@pytest.mark.asyncio
async def test_stray_key_without_expiry_is_healed(store) -> None:
    store.set("k", 7)
    tracker = WindowTracker(store, 5000)

    state = await tracker.trial("k")

    assert state == WindowState(count=8, reset=5000)
    assert await store.remaining_lifetime("k") == 5000


@pytest.mark.asyncio
async def test_absent_key_after_trial_raises_window_vanished() -> None:
    store = _mock_store()
    store.create_if_absent.return_value = False
    store.increment.return_value = 3
    store.remaining_lifetime.return_value = ABSENT

    with pytest.raises(WindowVanishedError) as exc_info:
        await WindowTracker(store, 5000).trial("k")

    assert exc_info.value.details["key"] == "k"
    store.set_lifetime.assert_not_awaited()


@pytest.mark.asyncio
async def test_unrepairable_stray_key_raises_window_vanished() -> None:
    store = _mock_store()
    store.create_if_absent.return_value = False
    store.increment.return_value = 2
    store.remaining_lifetime.return_value = NO_EXPIRY
    store.set_lifetime.return_value = False

    with pytest.raises(WindowVanishedError):
        await WindowTracker(store, 5000).trial("k")

    store.set_lifetime.assert_awaited_once_with("k", 5000)


@pytest.mark.asyncio
async def test_created_window_skips_increment() -> None:
    store = _mock_store()
    store.create_if_absent.return_value = True
    store.remaining_lifetime.return_value = 4999

    assert await WindowTracker(store, 5000).trial("k") == WindowState(count=1, reset=4999)
    store.create_if_absent.assert_awaited_once_with("k", 1, 5000)
    store.increment.assert_not_awaited()


@pytest.mark.asyncio
async def test_store_failure_aborts_without_retry() -> None:
    store = _mock_store()
    store.create_if_absent.side_effect = StoreOperationError(
        code="store_operation_failed", message="down"
    )

    with pytest.raises(StoreOperationError):
        await WindowTracker(store, 5000).trial("k")

    store.create_if_absent.assert_awaited_once()
    store.remaining_lifetime.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_trials_never_duplicate_counts() -> None:
    tracker = WindowTracker(InMemoryCounterStore(), 60_000)

    states = await asyncio.gather(*(tracker.trial("k") for _ in range(50)))

    assert sorted(state.count for state in states) == list(range(1, 51))
