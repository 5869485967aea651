"""Caller identity resolution through the user-profile service."""

from __future__ import annotations

import logging
from datetime import timedelta
from urllib.parse import quote

import httpx
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from workspace_service.common.errors import UpstreamServiceError
from workspace_service.common.logging import log_context
from workspace_service.infra.cache import CacheGateway
from workspace_service.settings import SERVICE_NAME

from .base import UpstreamClient, UpstreamModel

logger = logging.getLogger(__name__)

PROFILE_CACHE_PREFIX = "userprofile:"


class UserProfile(UpstreamModel):
    id: str = Field(alias="_id")
    email: str | None = None
    first_name: str | None = Field(default=None, alias="firstName")
    last_name: str | None = Field(default=None, alias="lastName")


class UserProfileClient(UpstreamClient):
    """``GET /profiles/{authId}``, cached per auth id."""

    service_name = "user-profile"

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        base_url: str,
        cache: CacheGateway,
        ttl: timedelta,
        api_key: str | None = None,
    ) -> None:
        super().__init__(http=http, base_url=base_url)
        self._cache = cache
        self._ttl = ttl
        self._api_key = api_key

    async def get_profile(self, auth_id: str) -> UserProfile:
        key = f"{PROFILE_CACHE_PREFIX}{auth_id}"
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                return UserProfile.model_validate_json(cached)
            except PydanticValidationError:
                await self._cache.invalidate(key)

        headers = {"X-Service-Name": SERVICE_NAME}
        if self._api_key:
            headers["X-Api-Key"] = self._api_key
        try:
            response = await self._send(
                "GET", f"/profiles/{quote(auth_id, safe='')}", headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(
                "User profile service is not responding", service=self.service_name
            ) from exc
        if response.is_error:
            raise UpstreamServiceError(
                f"User profile lookup failed with status {response.status_code}",
                service=self.service_name,
            )

        try:
            payload = response.json()
            data = payload.get("data") if isinstance(payload, dict) else None
            if not data:
                raise UpstreamServiceError("User profile not found", service=self.service_name)
            profile = UserProfile.model_validate(data)
        except (ValueError, PydanticValidationError) as exc:
            raise UpstreamServiceError(
                "Malformed user profile response", service=self.service_name
            ) from exc

        await self._cache.put(key, profile.model_dump_json(by_alias=True), ttl=self._ttl)
        logger.debug("profile.resolved", extra=log_context(user_id=profile.id, auth_id=auth_id))
        return profile

    async def invalidate(self, auth_id: str) -> None:
        await self._cache.invalidate(f"{PROFILE_CACHE_PREFIX}{auth_id}")


__all__ = ["PROFILE_CACHE_PREFIX", "UserProfile", "UserProfileClient"]
