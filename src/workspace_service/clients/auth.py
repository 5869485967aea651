"""Token validation against the upstream auth service."""

from __future__ import annotations

import httpx
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from workspace_service.common.errors import AuthenticationError

from .base import UpstreamClient, UpstreamModel, response_message


class TokenValidation(UpstreamModel):
    is_valid: bool = Field(alias="isValid")
    message: str | None = None


class AuthClient(UpstreamClient):
    """``POST /api/Auth/validate-token`` with the caller's bearer token."""

    service_name = "auth"

    async def validate_token(self, token: str) -> TokenValidation:
        try:
            response = await self._send(
                "POST",
                "/api/Auth/validate-token",
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise AuthenticationError("Auth service is not responding") from exc

        if response.is_error:
            raise AuthenticationError(response_message(response) or "Invalid token")

        try:
            return TokenValidation.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise AuthenticationError("Failed to validate token") from exc


__all__ = ["AuthClient", "TokenValidation"]
