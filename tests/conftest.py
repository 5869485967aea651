"""Shared pytest fixtures for the workspace service tests."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_service.clients import EntitlementClient
from workspace_service.db import Database, DatabaseConfig
from workspace_service.db.migrations import run_migrations
from workspace_service.events import WorkspaceEventPublisher
from workspace_service.features.workspaces.cache import WorkspaceCache
from workspace_service.features.workspaces.service import WorkspacesService
from workspace_service.infra.cache import CacheGateway
from workspace_service.main import create_app
from workspace_service.settings import Settings

from tests.doubles import (
    AUTH_URL,
    PROFILE_URL,
    ROLE_URL,
    SUBSCRIPTION_URL,
    FakeRedis,
    RecordingEventSink,
    UpstreamStub,
)

_TESTS_ROOT = Path(__file__).resolve().parent


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    for item in items:
        relative = Path(str(item.fspath)).resolve().relative_to(_TESTS_ROOT)
        if relative.parts and relative.parts[0] in {"unit", "integration"}:
            item.add_marker(getattr(pytest.mark, relative.parts[0]))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{(tmp_path / 'workspaces.sqlite').as_posix()}",
        auth_service_url=AUTH_URL,
        subscription_service_url=SUBSCRIPTION_URL,
        role_service_url=ROLE_URL,
        user_profile_service_url=PROFILE_URL,
        internal_api_key="internal-key",
        redis_host="127.0.0.1",
        redis_port=1,
    )


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def cache_gateway(fake_redis: FakeRedis) -> CacheGateway:
    return CacheGateway(fake_redis)


@pytest.fixture()
def event_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture()
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest_asyncio.fixture()
async def http_client(upstream: UpstreamStub) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture()
def migrated_settings(settings: Settings) -> Iterator[Settings]:
    run_migrations(settings)
    yield settings


@pytest_asyncio.fixture()
async def database(migrated_settings: Settings) -> AsyncIterator[Database]:
    db = Database()
    db.init(DatabaseConfig.from_settings(migrated_settings))
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture()
async def session(database: Database) -> AsyncIterator[AsyncSession]:
    async with database.sessionmaker() as db_session:
        yield db_session


@pytest.fixture()
def entitlements(
    http_client: httpx.AsyncClient, cache_gateway: CacheGateway, settings: Settings
) -> EntitlementClient:
    return EntitlementClient(
        http=http_client,
        base_url=SUBSCRIPTION_URL,
        cache=cache_gateway,
        ttl=settings.subscription_cache_ttl,
    )


@pytest.fixture()
def publisher(event_sink: RecordingEventSink, settings: Settings) -> WorkspaceEventPublisher:
    return WorkspaceEventPublisher(
        sink=event_sink, topic=settings.event_topic, source=settings.event_source
    )


@pytest.fixture()
def workspace_cache(cache_gateway: CacheGateway, settings: Settings) -> WorkspaceCache:
    return WorkspaceCache(cache_gateway, ttl=settings.workspace_cache_ttl)


@pytest.fixture()
def service(
    session: AsyncSession,
    workspace_cache: WorkspaceCache,
    publisher: WorkspaceEventPublisher,
    entitlements: EntitlementClient,
) -> WorkspacesService:
    return WorkspacesService(
        session=session,
        cache=workspace_cache,
        publisher=publisher,
        entitlements=entitlements,
    )


@pytest.fixture()
def app(
    migrated_settings: Settings,
    database: Database,
    cache_gateway: CacheGateway,
    http_client: httpx.AsyncClient,
    event_sink: RecordingEventSink,
) -> FastAPI:
    """Application wired to test doubles without running the lifespan."""

    application = create_app(migrated_settings)
    application.state.db = database
    application.state.cache = cache_gateway
    application.state.http_client = http_client
    application.state.event_sink = event_sink
    application.state.started_at = time.monotonic()
    return application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
