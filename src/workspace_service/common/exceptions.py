"""Centralized FastAPI exception handlers with structured logging.

Every error response is a Problem Details document
(``application/problem+json``) carrying the request's correlation ID.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import DuplicateError, ValidationError, WorkspaceServiceError
from .logging import log_context
from .problem_details import (
    ProblemDetailsErrorItem,
    build_problem_details,
    error_items_from_pydantic,
)

_UNHANDLED_LOGGER = logging.getLogger("workspace_service.errors")
_HTTP_LOGGER = logging.getLogger("workspace_service.http")

PROBLEM_JSON = "application/problem+json"


def _problem_response(
    request: Request,
    *,
    status_code: int,
    detail: str | None,
    errors: list[ProblemDetailsErrorItem] | None = None,
    error_type: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    problem = build_problem_details(
        status_code=status_code,
        instance=request.url.path,
        request_id=getattr(request.state, "correlation_id", None),
        detail=detail,
        errors=errors,
        error_type=error_type,
    )
    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(mode="json"),
        media_type=PROBLEM_JSON,
        headers=headers,
    )


async def service_error_handler(request: Request, exc: WorkspaceServiceError) -> JSONResponse:
    """Render domain errors using their declared status and problem type."""

    errors: list[ProblemDetailsErrorItem] | None = None
    if isinstance(exc, ValidationError) and exc.errors:
        errors = error_items_from_pydantic(exc.errors)
    elif isinstance(exc, DuplicateError) and exc.field:
        errors = [ProblemDetailsErrorItem(path=exc.field, message=exc.detail, code="duplicate")]

    extra = log_context(
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error=type(exc).__name__,
        detail=exc.detail,
    )
    if exc.status_code >= 500:
        _HTTP_LOGGER.error("service_error", extra=extra, exc_info=exc)
    else:
        _HTTP_LOGGER.info("service_error", extra=extra)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _problem_response(
        request,
        status_code=exc.status_code,
        detail=exc.detail,
        errors=errors,
        error_type=exc.error_type,
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request payload/params validation failures are client errors (400)."""

    return _problem_response(
        request,
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Validation failed",
        errors=error_items_from_pydantic(exc.errors()),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for HTTPException instances.

    4xx responses are returned without logging; 5xx responses are logged at
    ERROR level with structured metadata.
    """
    if exc.status_code >= 500:
        _HTTP_LOGGER.error(
            "http_exception",
            extra=log_context(
                path=request.url.path,
                method=request.method,
                status_code=exc.status_code,
                detail=exc.detail,
            ),
        )
    detail = exc.detail if isinstance(exc.detail, str) else None
    return _problem_response(
        request,
        status_code=exc.status_code,
        detail=detail,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: HTTP 500 plus an ERROR log with the stack trace."""

    _UNHANDLED_LOGGER.error(
        "unhandled_exception",
        extra=log_context(
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            detail=str(exc),
        ),
        exc_info=exc,
    )
    return _problem_response(
        request,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the service's exception handlers to ``app``."""

    app.add_exception_handler(WorkspaceServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "http_exception_handler",
    "register_exception_handlers",
    "request_validation_handler",
    "service_error_handler",
    "unhandled_exception_handler",
]
