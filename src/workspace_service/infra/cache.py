"""Key/value cache gateway backed by Redis.

The cache is advisory: every backend failure is logged and degrades to a
miss (reads) or a no-op (writes and invalidations). Callers never see a
cache error.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from workspace_service.common.logging import log_context
from workspace_service.settings import Settings

logger = logging.getLogger(__name__)

# Failures the gateway absorbs: protocol/connection errors and socket timeouts.
_CACHE_ERRORS: tuple[type[BaseException], ...] = (RedisError, OSError)


def _ttl_seconds(ttl: timedelta | int) -> int:
    seconds = int(ttl.total_seconds()) if isinstance(ttl, timedelta) else int(ttl)
    return max(1, seconds)


class CacheGateway:
    """Thin fail-open wrapper over an async Redis client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> CacheGateway:
        timeout = settings.upstream_timeout.total_seconds()
        client = Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except _CACHE_ERRORS as exc:
            logger.warning("cache.get.failed", extra=log_context(key=key, error=str(exc)))
            return None
        if value is None:
            logger.debug("cache.miss", extra=log_context(key=key))
            return None
        logger.debug("cache.hit", extra=log_context(key=key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def put(self, key: str, value: str, *, ttl: timedelta | int) -> None:
        try:
            await self._client.set(key, value, ex=_ttl_seconds(ttl))
        except _CACHE_ERRORS as exc:
            logger.warning("cache.put.failed", extra=log_context(key=key, error=str(exc)))

    async def invalidate(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except _CACHE_ERRORS as exc:
            logger.warning(
                "cache.invalidate.failed", extra=log_context(key=key, error=str(exc))
            )

    async def ping(self) -> bool:
        """Return ``True`` when the backend answers, ``False`` otherwise."""
        try:
            return bool(await self._client.ping())
        except _CACHE_ERRORS as exc:
            logger.warning("cache.ping.failed", extra=log_context(error=str(exc)))
            return False

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except _CACHE_ERRORS as exc:
            logger.warning("cache.close.failed", extra=log_context(error=str(exc)))


__all__ = ["CacheGateway"]
