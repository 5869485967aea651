"""Service factories used by API routers.

Long-lived resources are created in the lifespan and read from ``app.state``
here; per-request services are built on top of them.
"""

from __future__ import annotations

from typing import Annotated

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_service.clients import (
    AuthClient,
    EntitlementClient,
    PermissionClient,
    UserProfileClient,
)
from workspace_service.core.auth import (
    AccessGuard,
    AuthenticatedPrincipal,
    authenticate_request,
)
from workspace_service.db import get_db_session
from workspace_service.events import EventSink, WorkspaceEventPublisher
from workspace_service.infra.cache import CacheGateway
from workspace_service.settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_cache_gateway(request: Request) -> CacheGateway:
    return request.app.state.cache


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_event_sink(request: Request) -> EventSink:
    return request.app.state.event_sink


CacheDep = Annotated[CacheGateway, Depends(get_cache_gateway)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]


def get_auth_client(http: HttpClientDep, settings: SettingsDep) -> AuthClient:
    return AuthClient(http=http, base_url=settings.auth_service_url)


def get_profile_client(
    http: HttpClientDep, settings: SettingsDep, cache: CacheDep
) -> UserProfileClient:
    return UserProfileClient(
        http=http,
        base_url=settings.user_profile_service_url,
        cache=cache,
        ttl=settings.profile_cache_ttl,
        api_key=settings.internal_api_key_value,
    )


def get_entitlement_client(
    http: HttpClientDep, settings: SettingsDep, cache: CacheDep
) -> EntitlementClient:
    return EntitlementClient(
        http=http,
        base_url=settings.subscription_service_url,
        cache=cache,
        ttl=settings.subscription_cache_ttl,
    )


def get_permission_client(http: HttpClientDep, settings: SettingsDep) -> PermissionClient:
    return PermissionClient(http=http, base_url=settings.role_service_url)


def get_event_publisher(
    settings: SettingsDep,
    sink: Annotated[EventSink, Depends(get_event_sink)],
) -> WorkspaceEventPublisher:
    return WorkspaceEventPublisher(
        sink=sink, topic=settings.event_topic, source=settings.event_source
    )


async def get_current_principal(
    request: Request,
    auth_client: Annotated[AuthClient, Depends(get_auth_client)],
    profile_client: Annotated[UserProfileClient, Depends(get_profile_client)],
) -> AuthenticatedPrincipal:
    """Authenticate the incoming request and return the current principal."""

    return await authenticate_request(
        request, auth_client=auth_client, profile_client=profile_client
    )


PrincipalDep = Annotated[AuthenticatedPrincipal, Depends(get_current_principal)]


def get_access_guard(
    principal: PrincipalDep,
    entitlements: Annotated[EntitlementClient, Depends(get_entitlement_client)],
    permissions: Annotated[PermissionClient, Depends(get_permission_client)],
) -> AccessGuard:
    return AccessGuard(
        principal=principal, entitlements=entitlements, permissions=permissions
    )


def get_workspaces_service(
    session: SessionDep,
    settings: SettingsDep,
    cache: CacheDep,
    entitlements: Annotated[EntitlementClient, Depends(get_entitlement_client)],
    publisher: Annotated[WorkspaceEventPublisher, Depends(get_event_publisher)],
):
    from workspace_service.features.workspaces.cache import WorkspaceCache
    from workspace_service.features.workspaces.service import WorkspacesService

    return WorkspacesService(
        session=session,
        cache=WorkspaceCache(cache, ttl=settings.workspace_cache_ttl),
        publisher=publisher,
        entitlements=entitlements,
    )


def get_health_service(request: Request, settings: SettingsDep, cache: CacheDep):
    from workspace_service.features.health.service import HealthService

    return HealthService(
        settings=settings,
        database=request.app.state.db,
        cache=cache,
        started_at=request.app.state.started_at,
    )


__all__ = [
    "CacheDep",
    "HttpClientDep",
    "PrincipalDep",
    "SessionDep",
    "SettingsDep",
    "get_access_guard",
    "get_app_settings",
    "get_auth_client",
    "get_cache_gateway",
    "get_current_principal",
    "get_entitlement_client",
    "get_event_publisher",
    "get_event_sink",
    "get_health_service",
    "get_http_client",
    "get_permission_client",
    "get_profile_client",
    "get_workspaces_service",
]
