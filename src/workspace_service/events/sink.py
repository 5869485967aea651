"""Event sink abstraction and the default logging sink."""

from __future__ import annotations

import json
import logging
from typing import Protocol, runtime_checkable

from workspace_service.common.logging import log_context

from .types import EventMessage

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    """Destination for published events (message broker, log, test double)."""

    async def send(self, topic: str, message: EventMessage) -> None: ...

    async def aclose(self) -> None: ...


class LoggingEventSink:
    """Write each event to the structured log instead of a broker."""

    async def send(self, topic: str, message: EventMessage) -> None:
        props = message.application_properties
        logger.info(
            "event.published",
            extra=log_context(
                subscription_id=props.get("subscriptionId"),
                topic=topic,
                event_type=props.get("eventType"),
                event_id=message.body.get("id"),
                event_correlation_id=message.correlation_id,
                body=json.dumps(message.body, separators=(",", ":"), default=str),
            ),
        )

    async def aclose(self) -> None:
        return None


__all__ = ["EventSink", "LoggingEventSink"]
