"""Pydantic schemas for the health module."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from workspace_service.common.schema import BaseSchema

ConnectionState = Literal["connected", "disconnected"]


class HealthCheckResponse(BaseSchema):
    """Top-level payload returned by the `/health` endpoint."""

    status: Literal["ok", "error"] = Field(..., description="Overall service health indicator.")
    service: str = Field(..., description="Name of the reporting service.")
    version: str
    timestamp: datetime = Field(..., description="UTC timestamp for when the check executed.")
    uptime_seconds: float = Field(..., ge=0)
    database: ConnectionState
    cache: ConnectionState
