"""Workspace event envelope and type catalogue."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from workspace_service.common.schema import BaseSchema


class WorkspaceEventType(StrEnum):
    CREATED = "workspace.created"
    UPDATED = "workspace.updated"
    DELETED = "workspace.deleted"
    RESTORED = "workspace.restored"
    MEMBER_ADDED = "workspace.member.added"
    MEMBER_REMOVED = "workspace.member.removed"
    SETTINGS_UPDATED = "workspace.settings.updated"
    PROGRESS_UPDATED = "workspace.progress.updated"


class WorkspaceEvent(BaseSchema):
    """Envelope published for every committed workspace change."""

    id: str
    type: WorkspaceEventType
    data: dict[str, Any]
    timestamp: datetime
    correlation_id: str
    source: str

    @classmethod
    def new(
        cls,
        event_type: WorkspaceEventType,
        data: dict[str, Any],
        *,
        source: str,
        correlation_id: str | None = None,
    ) -> WorkspaceEvent:
        return cls(
            id=str(uuid4()),
            type=event_type,
            data=data,
            timestamp=datetime.now(UTC),
            correlation_id=correlation_id or str(uuid4()),
            source=source,
        )


@dataclass(frozen=True, slots=True)
class EventMessage:
    """Transport-level message handed to an :class:`EventSink`."""

    body: dict[str, Any]
    correlation_id: str
    content_type: str = "application/json"
    application_properties: dict[str, Any] = field(default_factory=dict)


__all__ = ["EventMessage", "WorkspaceEvent", "WorkspaceEventType"]
