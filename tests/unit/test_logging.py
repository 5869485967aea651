from __future__ import annotations

import logging
from uuid import UUID

from workspace_service.common.logging import (
    ConsoleLogFormatter,
    bind_request_context,
    clear_request_context,
    current_correlation_id,
    log_context,
)


def _record(message: str, **extra: object) -> logging.LogRecord:
    return logging.makeLogRecord(
        {
            "name": "workspace_service.tests",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": message,
            **extra,
        }
    )


def test_formatter_renders_extras_as_key_value_pairs() -> None:
    formatter = ConsoleLogFormatter()
    line = formatter.format(
        _record("workspace.create.success", workspace_id="w-1", subscription_id=None)
    )

    assert "INFO  workspace_service.tests [cid=-] workspace.create.success" in line
    assert "workspace_id=w-1" in line
    assert "subscription_id=null" in line
    assert line.split(" ", 1)[0].endswith("Z")


def test_formatter_uses_bound_correlation_id() -> None:
    bind_request_context("req-123")
    try:
        line = ConsoleLogFormatter().format(_record("request.complete"))
    finally:
        clear_request_context()

    assert "[cid=req-123]" in line
    assert current_correlation_id() is None


def test_log_context_drops_missing_identifiers() -> None:
    ctx = log_context(workspace_id=None, user_id="u-1", status_code=200)

    assert ctx == {"user_id": "u-1", "status_code": 200}


def test_log_context_stringifies_workspace_id() -> None:
    workspace_id = UUID("6f1c1c40-9f0a-4c4c-9a43-2d1ef9a5b001")

    assert log_context(workspace_id=workspace_id)["workspace_id"] == str(workspace_id)
