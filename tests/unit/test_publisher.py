from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

import pytest

from workspace_service.common.logging import bind_request_context, clear_request_context
from workspace_service.events import (
    EventPublishError,
    LoggingEventSink,
    WorkspaceEventPublisher,
    WorkspaceEventType,
)
from workspace_service.events.types import EventMessage

from tests.doubles import RecordingEventSink

pytestmark = pytest.mark.asyncio


async def test_envelope_fields(
    publisher: WorkspaceEventPublisher, event_sink: RecordingEventSink
) -> None:
    event = await publisher.workspace_created(
        workspace_id="ws-1",
        subscription_id="sub-1",
        name="Quarterly close",
        created_by="alice",
        settings={"theme": "dark"},
    )

    ((topic, message),) = event_sink.messages
    assert topic == "workspace-events"
    assert message.correlation_id == event.correlation_id
    assert message.application_properties == {
        "eventType": "workspace.created",
        "subscriptionId": "sub-1",
    }
    body = message.body
    assert UUID(body["id"])
    assert body["type"] == "workspace.created"
    assert body["source"] == "workspace-service"
    assert body["correlationId"] == event.correlation_id
    assert body["data"] == {
        "workspaceId": "ws-1",
        "subscriptionId": "sub-1",
        "name": "Quarterly close",
        "createdBy": "alice",
        "settings": {"theme": "dark"},
    }
    assert datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00")).tzinfo is not None


async def test_request_correlation_id_is_propagated(
    publisher: WorkspaceEventPublisher, event_sink: RecordingEventSink
) -> None:
    bind_request_context("req-42")
    try:
        await publisher.workspace_restored(
            workspace_id="ws-1", subscription_id="sub-1", restored_by="alice"
        )
    finally:
        clear_request_context()

    ((_, message),) = event_sink.messages
    assert message.correlation_id == "req-42"
    assert message.body["correlationId"] == "req-42"


async def test_each_event_gets_fresh_correlation_id_outside_requests(
    publisher: WorkspaceEventPublisher, event_sink: RecordingEventSink
) -> None:
    for _ in range(2):
        await publisher.member_removed(
            workspace_id="ws-1", subscription_id="sub-1", member_id="bob"
        )

    first, second = (message for _, message in event_sink.messages)
    assert first.correlation_id != second.correlation_id
    assert event_sink.types == ["workspace.member.removed", "workspace.member.removed"]


async def test_progress_event_serializes_timestamps(
    publisher: WorkspaceEventPublisher, event_sink: RecordingEventSink
) -> None:
    moment = datetime(2026, 2, 1, 9, 30, tzinfo=UTC)

    await publisher.progress_updated(
        workspace_id="ws-1",
        subscription_id="sub-1",
        state="WAITING_TASKS",
        previous_state="INITIAL",
        updated_by="alice",
        comment="kickoff",
        timestamp=moment,
    )

    (data,) = event_sink.of_type(WorkspaceEventType.PROGRESS_UPDATED)
    assert data["timestamp"] == moment.isoformat()
    assert data["previousState"] == "INITIAL"


async def test_sink_failure_raises_publish_error(
    publisher: WorkspaceEventPublisher, event_sink: RecordingEventSink
) -> None:
    event_sink.fail = True

    with pytest.raises(EventPublishError) as excinfo:
        await publisher.workspace_deleted(
            workspace_id="ws-1",
            subscription_id="sub-1",
            deletion_id="c" * 32,
            deleted_at=datetime(2026, 2, 1, tzinfo=UTC),
            deleted_by="alice",
        )

    assert excinfo.value.status_code == 500
    assert "workspace.deleted" in excinfo.value.detail


async def test_logging_sink_writes_event(caplog: pytest.LogCaptureFixture) -> None:
    message = EventMessage(
        body={"id": "evt-1", "type": "workspace.created"},
        correlation_id="cid-1",
        application_properties={"eventType": "workspace.created", "subscriptionId": "sub-1"},
    )

    with caplog.at_level("INFO", logger="workspace_service.events.sink"):
        await LoggingEventSink().send("workspace-events", message)

    (record,) = caplog.records
    assert record.getMessage() == "event.published"
    assert record.event_type == "workspace.created"
    assert record.event_correlation_id == "cid-1"
