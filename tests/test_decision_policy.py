"""Tests for turning window states into decisions."""

from unittest.mock import AsyncMock

import pytest

from window_limiter.services.decision import Decision, DecisionPolicy
from window_limiter.services.window_tracker import WindowState


@pytest.mark.asyncio
async def test_without_delay_returns_immediately() -> None:
    sleep = AsyncMock()
    policy = DecisionPolicy(limit=5, delay=0, sleep=sleep)

    decision = await policy.decide(WindowState(count=7, reset=300))

    assert decision == Decision(limit=5, remaining=-2, reset=300, uses_delay=False)
    assert decision.allowed is False
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_with_delay_inside_quota_does_not_wait() -> None:
    sleep = AsyncMock()
    policy = DecisionPolicy(limit=5, delay=100, sleep=sleep)

    decision = await policy.decide(WindowState(count=5, reset=300))

    assert decision == Decision(limit=5, remaining=0, reset=300, uses_delay=True)
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_with_delay_over_quota_waits_and_adjusts_reset() -> None:
    sleep = AsyncMock()
    policy = DecisionPolicy(limit=4, delay=100, sleep=sleep)

    decision = await policy.decide(WindowState(count=6, reset=450))

    sleep.assert_awaited_once_with(0.2)
    assert decision == Decision(limit=4, remaining=-2, reset=250, uses_delay=True)
    assert decision.allowed is True


@pytest.mark.asyncio
async def test_adjusted_reset_is_floored_at_zero() -> None:
    policy = DecisionPolicy(limit=1, delay=500, sleep=AsyncMock())

    decision = await policy.decide(WindowState(count=3, reset=200))

    assert decision.reset == 0


def test_decision_helpers() -> None:
    decision = Decision(limit=10, remaining=-1, reset=1500, uses_delay=False)

    assert decision.retry_after_seconds == 2
    assert decision.reset_at(now=1000.0) == 1002
    assert decision.as_tuple() == (10, -1, 1500, False)
