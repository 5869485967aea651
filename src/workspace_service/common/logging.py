"""Logging configuration and helpers for the workspace service.

Configures console-style logging for the whole process and exposes helpers
for binding a request-scoped correlation ID and for building consistent
``extra`` payloads. Only the formatter is custom: it renders one line per
record with timestamp, level, logger name, correlation ID and any ``extra``
fields as ``key=value`` pairs.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from workspace_service.settings import Settings

# ---------------------------------------------------------------------------
# Context and constants
# ---------------------------------------------------------------------------

_CORRELATION_ID: ContextVar[str | None] = ContextVar(
    "workspace_service_correlation_id",
    default=None,
)

# Attributes logging already renders; never echoed as key=value extras.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "asctime",
        "correlation_id",
        "taskName",
        "color_message",
    }
)

_CONFIGURED_FLAG = "_workspace_service_configured"

_THIRD_PARTY_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "alembic",
    "alembic.runtime.migration",
    "sqlalchemy",
    "httpx",
)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------


class ConsoleLogFormatter(logging.Formatter):
    """Render log records as single-line console output.

    Example line:

        2026-03-02T10:15:00.302Z INFO  workspace_service.features.workspaces.service
        [cid=1f0c...] workspace.create.success workspace_id=... subscription_id=...
    """

    _time_format = "%Y-%m-%dT%H:%M:%S"

    def __init__(self) -> None:
        fmt = "%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s"
        super().__init__(fmt=fmt, datefmt=self._time_format)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=UTC)
        base = dt.strftime(datefmt or self._time_format)
        return f"{base}.{int(record.msecs):03d}Z"

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - std signature
        record.correlation_id = (
            getattr(record, "correlation_id", None) or _CORRELATION_ID.get() or "-"
        )
        base = super().format(record)

        extras = [
            f"{key}={_format_extra_value(value)}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        ]
        if extras:
            return f"{base} " + " ".join(extras)
        return base


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure root logging for the service process.

    Installs a single stdout handler with :class:`ConsoleLogFormatter` and
    sets the root level from ``settings.logging_level``
    (env: ``WORKSPACE_LOGGING_LEVEL``). uvicorn, alembic, sqlalchemy and
    httpx loggers propagate into the root logger so every line shares the
    same format. Repeated calls only adjust the level.
    """
    root_logger = logging.getLogger()
    level = getattr(logging, settings.logging_level.upper(), logging.INFO)

    if getattr(root_logger, _CONFIGURED_FLAG, False):
        root_logger.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleLogFormatter())
    root_logger.handlers = [handler]
    root_logger.setLevel(level)

    for name in _THIRD_PARTY_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.propagate = True
    # httpx logs every request at INFO; request.complete already covers ours.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    setattr(root_logger, _CONFIGURED_FLAG, True)


# ---------------------------------------------------------------------------
# Context helpers
# ---------------------------------------------------------------------------


def bind_request_context(correlation_id: str | None) -> None:
    """Bind a correlation ID to the logging context for the current request."""
    _CORRELATION_ID.set(correlation_id)


def clear_request_context() -> None:
    """Clear the request-scoped logging context."""
    _CORRELATION_ID.set(None)


def current_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def log_context(
    *,
    workspace_id: Any = None,
    subscription_id: str | None = None,
    user_id: str | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a consistent ``extra`` payload for structured logs.

    Example:
        logger.info(
            "workspace.create.success",
            extra=log_context(
                workspace_id=workspace.id,
                subscription_id=workspace.subscription_id,
                user_id=creator_id,
            ),
        )
    """
    ctx: dict[str, Any] = {}
    if workspace_id is not None:
        ctx["workspace_id"] = str(workspace_id)
    if subscription_id is not None:
        ctx["subscription_id"] = subscription_id
    if user_id is not None:
        ctx["user_id"] = user_id
    ctx.update(extra)
    return ctx


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _format_extra_value(value: Any) -> str:
    if value is None:
        return "null"
    return str(value)


__all__ = [
    "ConsoleLogFormatter",
    "bind_request_context",
    "clear_request_context",
    "current_correlation_id",
    "log_context",
    "setup_logging",
]
