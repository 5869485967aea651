from __future__ import annotations

from datetime import timedelta

import httpx
import jwt
import pytest
from starlette.requests import Request

from workspace_service.clients import AuthClient, UserProfileClient
from workspace_service.common.errors import AuthenticationError, UpstreamServiceError
from workspace_service.core.auth import (
    AuthenticatedPrincipal,
    authenticate_request,
    extract_bearer_token,
    read_subject,
)
from workspace_service.infra.cache import CacheGateway

from tests.doubles import AUTH_URL, PROFILE_URL, FakeRedis, UpstreamStub


def _request(authorization: str | None) -> Request:
    headers = []
    if authorization is not None:
        headers.append((b"authorization", authorization.encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


@pytest.fixture()
def auth_client(http_client: httpx.AsyncClient) -> AuthClient:
    return AuthClient(http=http_client, base_url=AUTH_URL)


@pytest.fixture()
def profile_client(
    http_client: httpx.AsyncClient, cache_gateway: CacheGateway
) -> UserProfileClient:
    return UserProfileClient(
        http=http_client,
        base_url=PROFILE_URL,
        cache=cache_gateway,
        ttl=timedelta(minutes=5),
        api_key="internal-key",
    )


@pytest.mark.parametrize(
    ("header", "message"),
    [
        (None, "No token provided"),
        ("", "No token provided"),
        ("Basic abc", "Invalid token format"),
        ("Bearer ", "Invalid token format"),
    ],
)
def test_extract_bearer_token_rejects(header: str | None, message: str) -> None:
    with pytest.raises(AuthenticationError, match=message):
        extract_bearer_token(header)


def test_extract_bearer_token_is_case_insensitive() -> None:
    assert extract_bearer_token("bearer abc.def") == "abc.def"
    assert extract_bearer_token("Bearer abc.def") == "abc.def"


def test_read_subject() -> None:
    token = jwt.encode({"sub": "auth-42"}, "secret", algorithm="HS256")

    assert read_subject(token) == "auth-42"


@pytest.mark.parametrize(
    "token",
    ["not-a-jwt", jwt.encode({"name": "no subject"}, "secret", algorithm="HS256")],
)
def test_read_subject_rejects(token: str) -> None:
    with pytest.raises(AuthenticationError, match="Invalid token"):
        read_subject(token)


@pytest.mark.asyncio
async def test_authenticate_request_resolves_profile(
    auth_client: AuthClient,
    profile_client: UserProfileClient,
    upstream: UpstreamStub,
    fake_redis: FakeRedis,
) -> None:
    token = upstream.issue_token("alice")
    request = _request(f"Bearer {token}")

    principal = await authenticate_request(
        request, auth_client=auth_client, profile_client=profile_client
    )

    assert principal == AuthenticatedPrincipal(
        token=token, user_id="alice", auth_id="auth-alice", email="alice@example.com"
    )
    assert request.state.principal is principal
    (profile_call,) = upstream.calls("profiles.test")
    assert profile_call.url.path == "/profiles/auth-alice"
    assert profile_call.headers["X-Api-Key"] == "internal-key"
    assert profile_call.headers["X-Service-Name"] == "workspace-service"
    assert "userprofile:auth-alice" in fake_redis.store


@pytest.mark.asyncio
async def test_profile_is_served_from_cache(
    auth_client: AuthClient, profile_client: UserProfileClient, upstream: UpstreamStub
) -> None:
    token = upstream.issue_token("alice")

    for _ in range(2):
        await authenticate_request(
            _request(f"Bearer {token}"), auth_client=auth_client, profile_client=profile_client
        )

    assert len(upstream.calls("auth.test")) == 2
    assert len(upstream.calls("profiles.test")) == 1


@pytest.mark.asyncio
async def test_rejected_token_uses_upstream_message(
    auth_client: AuthClient, profile_client: UserProfileClient
) -> None:
    token = jwt.encode({"sub": "auth-x"}, "secret", algorithm="HS256")

    with pytest.raises(AuthenticationError, match="Token expired"):
        await authenticate_request(
            _request(f"Bearer {token}"), auth_client=auth_client, profile_client=profile_client
        )


@pytest.mark.asyncio
async def test_auth_service_down(
    auth_client: AuthClient, profile_client: UserProfileClient, upstream: UpstreamStub
) -> None:
    token = upstream.issue_token("alice")
    upstream.down.add("auth.test")

    with pytest.raises(AuthenticationError, match="not responding"):
        await authenticate_request(
            _request(f"Bearer {token}"), auth_client=auth_client, profile_client=profile_client
        )


@pytest.mark.asyncio
async def test_profile_failure_is_an_authentication_error(
    auth_client: AuthClient, profile_client: UserProfileClient, upstream: UpstreamStub
) -> None:
    token = upstream.issue_token("alice")
    upstream.profiles.clear()

    with pytest.raises(AuthenticationError, match="Failed to fetch user profile") as excinfo:
        await authenticate_request(
            _request(f"Bearer {token}"), auth_client=auth_client, profile_client=profile_client
        )

    assert isinstance(excinfo.value.__cause__, UpstreamServiceError)
