"""Application lifespan tests."""

from __future__ import annotations

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from workspace_service.db import Database
from workspace_service.infra.cache import CacheGateway
from workspace_service.main import create_app
from workspace_service.settings import Settings

pytestmark = pytest.mark.asyncio


async def test_startup_fails_without_migrations(settings: Settings) -> None:
    app = create_app(settings)

    with pytest.raises(RuntimeError, match="workspace-service migrate"):
        async with LifespanManager(app):
            pass


async def test_startup_wires_resources(migrated_settings: Settings) -> None:
    app = create_app(migrated_settings)

    async with LifespanManager(app) as manager:
        assert isinstance(app.state.db, Database)
        assert isinstance(app.state.cache, CacheGateway)
        assert app.state.settings is migrated_settings

        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/api/v1/health")

    # Nothing listens on the configured Redis port.
    assert response.status_code == 503
    assert response.json()["database"] == "connected"
    assert response.json()["cache"] == "disconnected"
