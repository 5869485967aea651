"""HTTP-level tests for the workspaces API."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from workspace_service.clients import Permission

from tests.doubles import RecordingEventSink, UpstreamStub

pytestmark = pytest.mark.asyncio

BASE = "/api/v1/workspaces"


def _headers(upstream: UpstreamStub, user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {upstream.issue_token(user_id)}"}


@pytest.fixture()
def subscription(upstream: UpstreamStub) -> str:
    upstream.add_subscription("sub-1", ["alice", "bob", "carol"])
    return "sub-1"


async def _create(
    client: AsyncClient,
    headers: dict[str, str],
    *,
    name: str = "Quarterly close",
    subscription_id: str = "sub-1",
) -> dict:
    response = await client.post(
        BASE,
        json={"name": name, "subscriptionId": subscription_id, "settings": {"currency": "EUR"}},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_and_read_workspace(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")

    created = await _create(async_client, alice)

    assert created["name"] == "Quarterly close"
    assert created["subscriptionId"] == subscription
    assert created["owner"] == ["alice"]
    assert created["members"] == ["alice"]
    assert created["isDeleted"] is False
    assert created["progress"]["state"] == "INITIAL"
    assert created["progress"]["history"] == []
    assert "description" not in created

    response = await async_client.get(f"{BASE}/{created['id']}", headers=alice)
    assert response.status_code == 200
    assert response.json() == created
    assert response.headers["X-Request-ID"]


async def test_missing_token_is_problem_details(async_client: AsyncClient) -> None:
    response = await async_client.get(
        BASE, params={"subscriptionId": "sub-1"}, headers={"X-Request-ID": "req-123"}
    )

    assert response.status_code == 401
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.json() == {
        "type": "unauthorized",
        "title": "Unauthorized",
        "status": 401,
        "detail": "No token provided",
        "instance": f"{BASE}",
        "requestId": "req-123",
    }


async def test_malformed_and_rejected_tokens(async_client: AsyncClient) -> None:
    malformed = await async_client.get(BASE, headers={"Authorization": "Token abc"})
    rejected = await async_client.get(BASE, headers={"Authorization": "Bearer nope"})

    assert malformed.status_code == 401
    assert malformed.json()["detail"] == "Invalid token format"
    assert rejected.status_code == 401
    assert rejected.json()["detail"] == "Token expired"


async def test_create_requires_approved_subscription(
    async_client: AsyncClient, upstream: UpstreamStub
) -> None:
    upstream.add_subscription("sub-pending", ["alice"], status="pending")

    response = await async_client.post(
        BASE,
        json={"name": "Nope", "subscriptionId": "sub-pending"},
        headers=_headers(upstream, "alice"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid or expired subscription"


async def test_create_requires_permission(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    upstream.denied_permissions.add(Permission.SUBSCRIPTION_WORKSPACES_CREATE)

    response = await async_client.post(
        BASE,
        json={"name": "Nope", "subscriptionId": subscription},
        headers=_headers(upstream, "alice"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == (
        "Permission 'SUBSCRIPTION.WORKSPACES.CREATE' denied for scope 'subscription'"
    )


async def test_create_validation_errors_are_bad_requests(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    response = await async_client.post(
        BASE,
        json={"name": "   ", "subscriptionId": subscription},
        headers=_headers(upstream, "alice"),
    )

    assert response.status_code == 400
    payload = response.json()
    assert payload["type"] == "bad_request"
    assert [error["path"] for error in payload["errors"]] == ["name"]


async def test_duplicate_name_conflicts(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")
    await _create(async_client, alice)

    response = await async_client.post(
        BASE, json={"name": "Quarterly close", "subscriptionId": subscription}, headers=alice
    )

    assert response.status_code == 409
    assert response.json()["errors"] == [
        {
            "path": "name",
            "message": "A workspace named 'Quarterly close' already exists in this subscription",
            "code": "duplicate",
        }
    ]


async def test_members_only_and_owner_only_routes(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")
    bob = _headers(upstream, "bob")
    workspace = await _create(async_client, alice)
    url = f"{BASE}/{workspace['id']}"

    outsider = await async_client.get(url, headers=bob)
    assert outsider.status_code == 403
    assert outsider.json()["detail"] == "You do not have access to this workspace"

    added = await async_client.post(f"{url}/users", json={"userIds": ["bob"]}, headers=alice)
    assert added.status_code == 200
    assert (await async_client.get(url, headers=bob)).status_code == 200

    forbidden = await async_client.put(url, json={"name": "Renamed"}, headers=bob)
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"] == "Only workspace owners can perform this action"


async def test_update_workspace(
    async_client: AsyncClient,
    upstream: UpstreamStub,
    subscription: str,
    event_sink: RecordingEventSink,
) -> None:
    alice = _headers(upstream, "alice")
    workspace = await _create(async_client, alice)
    url = f"{BASE}/{workspace['id']}"

    response = await async_client.put(
        url,
        json={"name": "Renamed", "settings": {"currency": "USD"}, "owner": ["bob"]},
        headers=alice,
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["name"] == "Renamed"
    assert body["settings"] == {"currency": "USD"}
    assert body["owner"] == ["alice"]
    assert body["updatedBy"] == "alice"
    assert event_sink.types[-2:] == ["workspace.updated", "workspace.settings.updated"]

    empty = await async_client.put(url, json={}, headers=alice)
    assert empty.status_code == 400
    assert empty.json()["detail"] == "No valid update data provided"


async def test_missing_workspace_is_not_found(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    response = await async_client.get(
        f"{BASE}/6f1c1c40-9f0a-4c4c-9a43-2d1ef9a5b001", headers=_headers(upstream, "alice")
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Workspace not found"


async def test_progress_endpoints(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")
    workspace = await _create(async_client, alice)
    url = f"{BASE}/{workspace['id']}/progress"

    invalid = await async_client.patch(url, json={"state": "COMPLETED"}, headers=alice)
    assert invalid.status_code == 400
    assert invalid.json()["errors"][0]["code"] == "invalid_transition"

    advanced = await async_client.patch(
        url, json={"state": "WAITING_TASKS", "comment": "kickoff"}, headers=alice
    )
    assert advanced.status_code == 200
    assert advanced.json()["progress"]["state"] == "WAITING_TASKS"

    progress = (await async_client.get(url, headers=alice)).json()
    assert progress["state"] == "WAITING_TASKS"
    assert progress["history"] == [
        {
            "state": "WAITING_TASKS",
            "timestamp": progress["lastUpdated"],
            "updatedBy": "alice",
            "comment": "kickoff",
        }
    ]

    unknown = await async_client.patch(url, json={"state": "ARCHIVED"}, headers=alice)
    assert unknown.status_code == 400


async def test_delete_and_restore(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")
    workspace = await _create(async_client, alice)
    url = f"{BASE}/{workspace['id']}"

    deleted = await async_client.delete(url, headers=alice)
    assert deleted.status_code == 200
    body = deleted.json()
    assert body["message"] == "Workspace deleted successfully"
    assert len(body["deletionId"]) == 32

    assert (await async_client.get(url, headers=alice)).status_code == 404
    assert (await async_client.delete(url, headers=alice)).status_code == 404
    hidden = await async_client.get(url, params={"includeSoftDeleted": "true"}, headers=alice)
    assert hidden.status_code == 200
    assert hidden.json()["deletionId"] == body["deletionId"]

    restored = await async_client.post(f"{url}/restore", headers=alice)
    assert restored.status_code == 200
    assert restored.json()["isDeleted"] is False
    assert (await async_client.get(url, headers=alice)).status_code == 200

    again = await async_client.post(f"{url}/restore", headers=alice)
    assert again.status_code == 404
    assert again.json()["detail"] == "Workspace not found or not deleted"


async def test_manage_users(
    async_client: AsyncClient,
    upstream: UpstreamStub,
    subscription: str,
    event_sink: RecordingEventSink,
) -> None:
    alice = _headers(upstream, "alice")
    workspace = await _create(async_client, alice)
    url = f"{BASE}/{workspace['id']}/users"

    added = await async_client.post(
        url, json={"userIds": ["bob", "mallory"], "role": "viewer"}, headers=alice
    )
    assert added.status_code == 200
    assert added.json()["addedUsers"] == ["bob"]
    assert added.json()["invalidUsers"] == ["mallory"]
    assert added.json()["workspace"]["memberRoles"] == {"bob": "viewer"}

    none_valid = await async_client.post(url, json={"userIds": ["mallory"]}, headers=alice)
    assert none_valid.status_code == 400
    assert none_valid.json()["errors"][0]["path"] == "userIds"

    removed = await async_client.request(
        "DELETE", url, json={"userIds": ["bob", "alice"]}, headers=alice
    )
    assert removed.status_code == 200
    assert removed.json()["removedUsers"] == ["bob"]
    assert removed.json()["workspace"]["members"] == ["alice"]
    assert event_sink.types.count("workspace.member.removed") == 1


async def test_list_endpoints(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    upstream.add_subscription("sub-2", ["alice"])
    alice = _headers(upstream, "alice")
    bob = _headers(upstream, "bob")
    await _create(async_client, alice, name="alpha")
    await _create(async_client, alice, name="beta", subscription_id="sub-2")
    await _create(async_client, bob, name="gamma")

    missing = await async_client.get(BASE, headers=alice)
    assert missing.status_code == 403
    assert missing.json()["detail"] == "Subscription ID is required"

    scoped = (
        await async_client.get(BASE, params={"subscriptionId": "sub-1"}, headers=alice)
    ).json()
    assert [item["name"] for item in scoped["items"]] == ["alpha"]
    assert (scoped["page"], scoped["limit"], scoped["total"], scoped["totalPages"]) == (
        1,
        10,
        1,
        1,
    )

    mine = (await async_client.get(f"{BASE}/my", headers=alice)).json()
    assert [item["name"] for item in mine["items"]] == ["beta", "alpha"]

    everyone = (await async_client.get(f"{BASE}/subscription/sub-1", headers=alice)).json()
    assert [item["name"] for item in everyone["items"]] == ["gamma", "alpha"]

    too_big = await async_client.get(f"{BASE}/my", params={"limit": 1000}, headers=alice)
    assert too_big.status_code == 400


async def test_events_carry_request_correlation_id(
    async_client: AsyncClient,
    upstream: UpstreamStub,
    subscription: str,
    event_sink: RecordingEventSink,
) -> None:
    headers = {**_headers(upstream, "alice"), "X-Request-ID": "req-create-1"}

    await _create(async_client, headers)

    ((_, message),) = event_sink.messages
    assert message.correlation_id == "req-create-1"
    assert message.body["correlationId"] == "req-create-1"


async def test_subscription_service_outage_is_server_error(
    async_client: AsyncClient, upstream: UpstreamStub, subscription: str
) -> None:
    alice = _headers(upstream, "alice")
    upstream.down.add("subscriptions.test")

    response = await async_client.post(
        BASE, json={"name": "x", "subscriptionId": subscription}, headers=alice
    )

    assert response.status_code == 500
    assert response.json()["type"] == "internal_error"
