"""Custom FastAPI middleware components."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from workspace_service.settings import Settings

from .logging import bind_request_context, clear_request_context, log_context

_REQUEST_LOGGER = logging.getLogger("workspace_service.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach correlation IDs and emit structured request logs."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.correlation_id = correlation_id
        bind_request_context(correlation_id)

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            extra = log_context(
                path=request.url.path,
                method=request.method,
                duration_ms=round(duration_ms, 2),
                status_code=response.status_code if response is not None else None,
            )
            if response is not None:
                _REQUEST_LOGGER.info("request.complete", extra=extra)
            else:
                # Stack trace is logged by the unhandled exception handler.
                _REQUEST_LOGGER.error("request.error", extra=extra)
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Register default middleware on the FastAPI application."""

    origins = list(settings.server_cors_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(RequestContextMiddleware)


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "register_middleware"]
