"""Tests for the limiter HTTP service routes."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from window_limiter.adapters.store.base import AbstractCounterStore
from window_limiter.adapters.store.in_memory import InMemoryCounterStore
from window_limiter.core import rate_limit as rate_limit_module
from window_limiter.core.config import settings
from window_limiter.main import app


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test its own in-memory store and limiters."""
    monkeypatch.setattr(rate_limit_module, "_store", None)
    monkeypatch.setattr(rate_limit_module, "_store_config", None)
    monkeypatch.setattr(rate_limit_module, "_limiters", {})
    monkeypatch.setattr(rate_limit_module, "_limiters_config", None)
    monkeypatch.setattr(settings.store, "backend", "memory")
    monkeypatch.setattr(settings.limiter, "enabled", True)
    monkeypatch.setattr(settings.limiter, "include_headers", True)
    monkeypatch.setattr(settings.limiter, "limit", 3)
    monkeypatch.setattr(settings.limiter, "period_ms", 60_000)
    monkeypatch.setattr(settings.limiter, "delay_ms", 0)
    monkeypatch.setattr(settings.limiter, "guard_limit", 100)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_health_is_not_rate_limited(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert "X-RateLimit-Limit" not in resp.headers


def test_check_returns_decision(client: TestClient) -> None:
    resp = client.post("/v1/limits/check", json={"key": "alice"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["limit"] == 3
    assert body["remaining"] == 2
    assert body["uses_delay"] is False
    assert body["allowed"] is True
    assert 0 < body["reset_ms"] <= 60_000
    assert body["retry_after_seconds"] == 60


def test_check_counts_down_and_goes_negative(client: TestClient) -> None:
    remaining = [
        client.post("/v1/limits/check", json={"key": ["alice", "login"]}).json()["remaining"]
        for _ in range(5)
    ]

    assert remaining == [2, 1, 0, -1, -2]
    last = client.post("/v1/limits/check", json={"key": ["alice", "login"]}).json()
    assert last["allowed"] is False


def test_check_rejects_invalid_key(client: TestClient) -> None:
    resp = client.post("/v1/limits/check", json={"key": "has space"})

    assert resp.status_code == 400
    error = resp.json()["error"]
    assert error["code"] == "invalid_key"
    assert error["request_id"]


def test_check_rejects_empty_composite_key(client: TestClient) -> None:
    resp = client.post("/v1/limits/check", json={"key": []})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_key"


def test_guard_limits_the_client(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.limiter, "guard_limit", 2)
    headers = {"X-API-Key": "secret-key-1"}

    first = client.post("/v1/limits/check", json={"key": "a"}, headers=headers)
    client.post("/v1/limits/check", json={"key": "a"}, headers=headers)
    third = client.post("/v1/limits/check", json={"key": "a"}, headers=headers)

    assert first.status_code == 200
    assert first.headers["X-RateLimit-Limit"] == "2"
    assert first.headers["X-RateLimit-Remaining"] == "1"
    assert third.status_code == 429
    assert third.headers["Retry-After"] == "60"

    other = client.post("/v1/limits/check", json={"key": "a"}, headers={"X-API-Key": "other"})
    assert other.status_code == 200


def test_guard_can_be_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.limiter, "enabled", False)
    monkeypatch.setattr(settings.limiter, "guard_limit", 1)

    for _ in range(3):
        resp = client.post("/v1/limits/check", json={"key": "a"})
        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers


def test_limiters_are_rebuilt_when_settings_change(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    assert client.post("/v1/limits/check", json={"key": "z"}).json()["limit"] == 3

    monkeypatch.setattr(settings.limiter, "limit", 7)

    assert client.post("/v1/limits/check", json={"key": "z"}).json()["limit"] == 7


@pytest.mark.parametrize("key", [True, False, 1.0, [True], ["alice", 2.5], None])
def test_check_rejects_non_token_json_values(client: TestClient, key) -> None:
    resp = client.post("/v1/limits/check", json={"key": key})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_key"


def test_rejected_json_values_are_not_counted(client: TestClient) -> None:
    client.post("/v1/limits/check", json={"key": True})
    client.post("/v1/limits/check", json={"key": 1.0})

    resp = client.post("/v1/limits/check", json={"key": 1})

    assert resp.status_code == 200
    assert resp.json()["remaining"] == 2


@pytest.mark.asyncio
async def test_replaced_store_is_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    old_store = AsyncMock(spec=AbstractCounterStore)
    monkeypatch.setattr(rate_limit_module, "_store", old_store)
    monkeypatch.setattr(rate_limit_module, "_store_config", ("redis", "redis://old:6379/0"))

    store = await rate_limit_module.get_counter_store()

    assert isinstance(store, InMemoryCounterStore)
    old_store.close.assert_awaited_once()
    assert await rate_limit_module.get_counter_store() is store
