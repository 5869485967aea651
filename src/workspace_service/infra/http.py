"""Shared HTTP client for upstream service calls."""

from __future__ import annotations

import httpx

from workspace_service.settings import SERVICE_NAME, Settings

__all__ = ["build_http_client", "join_url"]


def build_http_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Return the application's pooled ``AsyncClient`` with a bounded timeout."""

    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_timeout.total_seconds()),
        headers={"User-Agent": f"{SERVICE_NAME}/{settings.app_version}"},
        transport=transport,
    )


def join_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
