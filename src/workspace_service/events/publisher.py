"""Workspace event publisher.

Events are published after the mutation they describe has been committed.
A sink failure surfaces as :class:`EventPublishError`; the committed change
is not rolled back.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from workspace_service.common.errors import WorkspaceServiceError
from workspace_service.common.logging import current_correlation_id, log_context

from .sink import EventSink
from .types import EventMessage, WorkspaceEvent, WorkspaceEventType

logger = logging.getLogger(__name__)


class EventPublishError(WorkspaceServiceError):
    default_detail = "Failed to publish workspace event"


class WorkspaceEventPublisher:
    """Build event envelopes and hand them to the configured sink."""

    def __init__(self, *, sink: EventSink, topic: str, source: str) -> None:
        self._sink = sink
        self._topic = topic
        self._source = source

    async def publish(
        self, event_type: WorkspaceEventType, data: dict[str, Any]
    ) -> WorkspaceEvent:
        event = WorkspaceEvent.new(
            event_type, data, source=self._source, correlation_id=current_correlation_id()
        )
        message = EventMessage(
            body=event.model_dump(mode="json"),
            correlation_id=event.correlation_id,
            application_properties={
                "eventType": str(event_type),
                "subscriptionId": data.get("subscriptionId"),
            },
        )
        ctx = log_context(
            workspace_id=data.get("workspaceId"),
            subscription_id=data.get("subscriptionId"),
            event_type=str(event_type),
            event_id=event.id,
            topic=self._topic,
        )
        try:
            await self._sink.send(self._topic, message)
        except Exception as exc:
            logger.error("event.publish.failed", extra=ctx, exc_info=exc)
            raise EventPublishError(f"Failed to publish {event_type}") from exc
        logger.debug("event.publish.success", extra=ctx)
        return event

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def workspace_created(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        name: str,
        created_by: str,
        settings: dict[str, Any],
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.CREATED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "name": name,
                "createdBy": created_by,
                "settings": settings,
            },
        )

    async def workspace_updated(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        name: str,
        updated_by: str,
        settings: dict[str, Any],
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.UPDATED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "name": name,
                "updatedBy": updated_by,
                "settings": settings,
            },
        )

    async def workspace_settings_updated(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        updated_by: str,
        settings: dict[str, Any],
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.SETTINGS_UPDATED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "updatedBy": updated_by,
                "settings": settings,
            },
        )

    async def workspace_deleted(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        deletion_id: str,
        deleted_at: datetime,
        deleted_by: str,
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.DELETED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "deletionId": deletion_id,
                "deletedAt": deleted_at.isoformat(),
                "deletedBy": deleted_by,
            },
        )

    async def workspace_restored(
        self, *, workspace_id: str, subscription_id: str, restored_by: str
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.RESTORED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "restoredBy": restored_by,
            },
        )

    async def member_added(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        member_id: str,
        role: str | None,
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.MEMBER_ADDED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "memberId": member_id,
                "role": role,
            },
        )

    async def member_removed(
        self, *, workspace_id: str, subscription_id: str, member_id: str
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.MEMBER_REMOVED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "memberId": member_id,
            },
        )

    async def progress_updated(
        self,
        *,
        workspace_id: str,
        subscription_id: str,
        state: str,
        previous_state: str,
        updated_by: str,
        comment: str,
        timestamp: datetime,
    ) -> WorkspaceEvent:
        return await self.publish(
            WorkspaceEventType.PROGRESS_UPDATED,
            {
                "workspaceId": workspace_id,
                "subscriptionId": subscription_id,
                "state": state,
                "previousState": previous_state,
                "updatedBy": updated_by,
                "comment": comment,
                "timestamp": timestamp.isoformat(),
            },
        )


__all__ = ["EventPublishError", "WorkspaceEventPublisher"]
