"""FastAPI lifespan helpers for the workspace service."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import Lifespan
from sqlalchemy import text
from sqlalchemy.engine import make_url

from workspace_service.db import Database, DatabaseConfig
from workspace_service.events import LoggingEventSink
from workspace_service.infra.cache import CacheGateway
from workspace_service.infra.http import build_http_client
from workspace_service.settings import Settings

logger = logging.getLogger(__name__)


async def _check_schema(database: Database) -> None:
    async with database.engine.connect() as conn:
        await conn.execute(text("SELECT 1 FROM alembic_version"))


def create_application_lifespan(*, settings: Settings) -> Lifespan[FastAPI]:
    """Return the FastAPI lifespan handler used by the app factory."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = time.monotonic()

        safe_url = make_url(settings.database_url).render_as_string(hide_password=True)
        logger.info("db.init.start", extra={"database_url": safe_url})
        database = Database()
        database.init(DatabaseConfig.from_settings(settings))
        app.state.db = database
        logger.info("db.init.complete", extra={"database_url": safe_url})

        try:
            # Fail fast if the schema hasn't been migrated.
            try:
                await _check_schema(database)
            except Exception as exc:
                logger.error(
                    "db.schema.missing",
                    extra={"database_url": safe_url},
                    exc_info=True,
                )
                raise RuntimeError(
                    "Database schema is not initialized. "
                    "Run `workspace-service migrate` before starting the API."
                ) from exc

            cache = CacheGateway.from_settings(settings)
            http_client = build_http_client(settings)
            event_sink = LoggingEventSink()
            app.state.cache = cache
            app.state.http_client = http_client
            app.state.event_sink = event_sink
            if not await cache.ping():
                logger.warning("cache.unavailable", extra={"redis_host": settings.redis_host})

            logger.info("app.startup.complete", extra={"app_version": settings.app_version})
            try:
                yield
            finally:
                await event_sink.aclose()
                await http_client.aclose()
                await cache.aclose()
                logger.info("app.shutdown.complete")
        finally:
            await database.dispose()

    return lifespan


__all__ = ["create_application_lifespan"]
