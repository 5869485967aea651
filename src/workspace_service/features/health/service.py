"""Service layer for the health module."""

from __future__ import annotations

import logging
import time

from workspace_service.db import Database, utc_now
from workspace_service.infra.cache import CacheGateway
from workspace_service.settings import SERVICE_NAME, Settings

from .schemas import ConnectionState, HealthCheckResponse

logger = logging.getLogger(__name__)


def _state(ok: bool) -> ConnectionState:
    return "connected" if ok else "disconnected"


class HealthService:
    """Probe the relational store and the cache."""

    def __init__(
        self,
        *,
        settings: Settings,
        database: Database,
        cache: CacheGateway,
        started_at: float,
    ) -> None:
        self._settings = settings
        self._database = database
        self._cache = cache
        self._started_at = started_at

    async def _database_ok(self) -> bool:
        try:
            return await self._database.ping()
        except Exception:
            logger.warning("health.database.unreachable", exc_info=True)
            return False

    async def status(self) -> HealthCheckResponse:
        database_ok = await self._database_ok()
        cache_ok = await self._cache.ping()
        healthy = database_ok and cache_ok
        if not healthy:
            logger.warning(
                "health.status.degraded",
                extra={"database": _state(database_ok), "cache": _state(cache_ok)},
            )
        return HealthCheckResponse(
            status="ok" if healthy else "error",
            service=SERVICE_NAME,
            version=self._settings.app_version,
            timestamp=utc_now(),
            uptime_seconds=round(max(0.0, time.monotonic() - self._started_at), 3),
            database=_state(database_ok),
            cache=_state(cache_ok),
        )


__all__ = ["HealthService"]
