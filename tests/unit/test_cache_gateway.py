from __future__ import annotations

from datetime import timedelta

import pytest

from workspace_service.infra.cache import CacheGateway

from tests.doubles import FakeRedis

pytestmark = pytest.mark.asyncio


async def test_put_then_get_uses_ttl_seconds(
    cache_gateway: CacheGateway, fake_redis: FakeRedis
) -> None:
    await cache_gateway.put("workspace:1", '{"id": 1}', ttl=timedelta(minutes=10))

    assert await cache_gateway.get("workspace:1") == '{"id": 1}'
    assert fake_redis.ttls["workspace:1"] == 600


async def test_sub_second_ttl_is_rounded_up(
    cache_gateway: CacheGateway, fake_redis: FakeRedis
) -> None:
    await cache_gateway.put("k", "v", ttl=timedelta(milliseconds=200))

    assert fake_redis.ttls["k"] == 1


async def test_miss_returns_none(cache_gateway: CacheGateway) -> None:
    assert await cache_gateway.get("missing") is None


async def test_invalidate_removes_entry(
    cache_gateway: CacheGateway, fake_redis: FakeRedis
) -> None:
    await cache_gateway.put("k", "v", ttl=60)
    await cache_gateway.invalidate("k")

    assert "k" not in fake_redis.store


async def test_backend_failures_are_absorbed(
    cache_gateway: CacheGateway, fake_redis: FakeRedis
) -> None:
    fake_redis.fail = True

    assert await cache_gateway.get("k") is None
    await cache_gateway.put("k", "v", ttl=60)
    await cache_gateway.invalidate("k")
    assert await cache_gateway.ping() is False
    assert fake_redis.store == {}


async def test_ping_and_close(cache_gateway: CacheGateway, fake_redis: FakeRedis) -> None:
    assert await cache_gateway.ping() is True

    await cache_gateway.aclose()

    assert fake_redis.closed is True
