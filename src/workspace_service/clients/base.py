"""Common plumbing for upstream HTTP clients."""

from __future__ import annotations

import logging
import time
from typing import Any, ClassVar

import httpx
from pydantic import BaseModel, ConfigDict

from workspace_service.common.logging import log_context
from workspace_service.infra.http import join_url

logger = logging.getLogger(__name__)


class UpstreamModel(BaseModel):
    """Payload parsed from an upstream service; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class UpstreamClient:
    """Base class holding the shared ``AsyncClient`` and the service base URL."""

    service_name: ClassVar[str] = "upstream"

    def __init__(self, *, http: httpx.AsyncClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Issue a request, logging its outcome. Transport errors propagate."""

        url = join_url(self._base_url, path)
        start = time.perf_counter()
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "upstream.request.failed",
                extra=log_context(
                    service=self.service_name,
                    method=method,
                    path=path,
                    error_type=type(exc).__name__,
                    duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                ),
            )
            raise
        logger.debug(
            "upstream.request.complete",
            extra=log_context(
                service=self.service_name,
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
            ),
        )
        return response


def response_message(response: httpx.Response) -> str | None:
    """Best-effort ``message`` field from an error response body."""

    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return None


__all__ = ["UpstreamClient", "UpstreamModel", "response_message"]
