from __future__ import annotations

import pytest
from httpx import AsyncClient

from tests.doubles import FakeRedis

pytestmark = pytest.mark.asyncio


async def test_health_reports_ok(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "workspace-service"
    assert payload["database"] == "connected"
    assert payload["cache"] == "connected"
    assert payload["uptimeSeconds"] >= 0


async def test_health_degrades_when_cache_is_down(
    async_client: AsyncClient, fake_redis: FakeRedis
) -> None:
    fake_redis.fail = True

    response = await async_client.get("/api/v1/health")

    assert response.status_code == 503
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["database"] == "connected"
    assert payload["cache"] == "disconnected"


async def test_health_does_not_require_authentication(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/health", headers={"Authorization": "junk"})

    assert response.status_code == 200
