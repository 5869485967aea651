"""Outbound workspace events."""

from .publisher import EventPublishError, WorkspaceEventPublisher
from .sink import EventSink, LoggingEventSink
from .types import EventMessage, WorkspaceEvent, WorkspaceEventType

__all__ = [
    "EventMessage",
    "EventPublishError",
    "EventSink",
    "LoggingEventSink",
    "WorkspaceEvent",
    "WorkspaceEventPublisher",
    "WorkspaceEventType",
]
