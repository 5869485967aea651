"""Request authentication pipeline used by FastAPI dependencies."""

from __future__ import annotations

import logging

import jwt
from fastapi import Request

from workspace_service.clients.auth import AuthClient
from workspace_service.clients.profiles import UserProfileClient
from workspace_service.common.errors import AuthenticationError, UpstreamServiceError
from workspace_service.common.logging import log_context

from .principal import AuthenticatedPrincipal

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer "


def extract_bearer_token(header: str | None) -> str:
    """Return the token from an ``Authorization: Bearer`` header value."""

    if not header:
        raise AuthenticationError("No token provided")
    if not header.lower().startswith(_BEARER_PREFIX):
        raise AuthenticationError("Invalid token format")
    token = header[len(_BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError("Invalid token format")
    return token


def read_subject(token: str) -> str:
    """Return the ``sub`` claim without re-verifying the signature.

    The auth service has already validated the token by the time this runs.
    """

    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid token") from exc
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthenticationError("Invalid token")
    return subject


async def authenticate_request(
    request: Request,
    *,
    auth_client: AuthClient,
    profile_client: UserProfileClient,
) -> AuthenticatedPrincipal:
    """Validate the bearer token and resolve the caller's profile id."""

    token = extract_bearer_token(request.headers.get("authorization"))

    validation = await auth_client.validate_token(token)
    if not validation.is_valid:
        raise AuthenticationError(validation.message or "Invalid token")

    auth_id = read_subject(token)
    try:
        profile = await profile_client.get_profile(auth_id)
    except UpstreamServiceError as exc:
        logger.warning(
            "auth.profile.failed",
            extra=log_context(auth_id=auth_id, error=exc.detail),
        )
        raise AuthenticationError("Failed to fetch user profile") from exc

    principal = AuthenticatedPrincipal(
        token=token,
        user_id=profile.id,
        auth_id=auth_id,
        email=profile.email,
    )
    request.state.principal = principal
    logger.debug("auth.authenticated", extra=log_context(user_id=principal.user_id))
    return principal


__all__ = ["authenticate_request", "extract_bearer_token", "read_subject"]
