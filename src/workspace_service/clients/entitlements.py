"""Subscription entitlement lookups.

Subscription details are cached for a short TTL so that checking several
users against one subscription costs a single upstream call.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import field_validator
from pydantic import ValidationError as PydanticValidationError

from workspace_service.common.errors import UpstreamServiceError
from workspace_service.common.logging import log_context
from workspace_service.infra.cache import CacheGateway

from .base import UpstreamClient, UpstreamModel

logger = logging.getLogger(__name__)

SUBSCRIPTION_CACHE_PREFIX = "subscription:"
APPROVED_STATUS = "approved"


class EntitlementServiceError(UpstreamServiceError):
    default_detail = "Subscription service request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail, service="subscription")


class SubscriptionDetails(UpstreamModel):
    status: str
    user_ids: list[str] = []
    user_limit: int | None = None
    user_count: int = 0

    @field_validator("user_ids", mode="before")
    @classmethod
    def _v_user_ids(cls, v: Any) -> list[str]:
        if v is None:
            return []
        return [str(item) for item in v]

    @field_validator("user_count", mode="before")
    @classmethod
    def _v_user_count(cls, v: Any) -> int:
        return 0 if v is None else v


class EntitlementClient(UpstreamClient):
    """``GET /api/user/subscription/{id}`` with the caller's token."""

    service_name = "subscription"

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        base_url: str,
        cache: CacheGateway,
        ttl: timedelta,
    ) -> None:
        super().__init__(http=http, base_url=base_url)
        self._cache = cache
        self._ttl = ttl

    async def get_subscription_details(
        self, subscription_id: str, token: str
    ) -> SubscriptionDetails:
        """Return subscription details, raising :class:`EntitlementServiceError`."""

        key = f"{SUBSCRIPTION_CACHE_PREFIX}{subscription_id}"
        cached = await self._cache.get(key)
        if cached is not None:
            try:
                return SubscriptionDetails.model_validate_json(cached)
            except PydanticValidationError:
                await self._cache.invalidate(key)

        try:
            response = await self._send(
                "GET",
                f"/api/user/subscription/{quote(subscription_id, safe='')}",
                headers={"Token": token},
            )
        except httpx.TimeoutException as exc:
            raise EntitlementServiceError("Subscription service timed out") from exc
        except httpx.HTTPError as exc:
            raise EntitlementServiceError("Subscription service is not responding") from exc

        if response.is_error:
            logger.warning(
                "subscription.lookup.failed",
                extra=log_context(
                    subscription_id=subscription_id, status_code=response.status_code
                ),
            )
            raise EntitlementServiceError(
                f"Subscription lookup failed with status {response.status_code}"
            )

        try:
            payload = response.json()
            if isinstance(payload, dict) and isinstance(payload.get("subscription_request"), dict):
                payload = payload["subscription_request"]
            details = SubscriptionDetails.model_validate(payload)
        except (ValueError, PydanticValidationError) as exc:
            raise EntitlementServiceError("Malformed subscription response") from exc

        await self._cache.put(key, details.model_dump_json(), ttl=self._ttl)
        return details

    async def is_subscription_valid(self, subscription_id: str, token: str) -> bool:
        details = await self.get_subscription_details(subscription_id, token)
        return details.status == APPROVED_STATUS

    async def is_user_in_subscription(
        self, subscription_id: str, user_id: str, token: str
    ) -> bool:
        details = await self.get_subscription_details(subscription_id, token)
        return str(user_id) in details.user_ids

    async def validate_user_limit(
        self, subscription_id: str, token: str, additional: int = 1
    ) -> bool:
        """Would ``additional`` more users fit? ``user_limit=None`` means unlimited."""

        details = await self.get_subscription_details(subscription_id, token)
        if details.user_limit is None:
            return True
        return details.user_count + additional <= details.user_limit


__all__ = [
    "APPROVED_STATUS",
    "EntitlementClient",
    "EntitlementServiceError",
    "SUBSCRIPTION_CACHE_PREFIX",
    "SubscriptionDetails",
]
