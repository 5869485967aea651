"""Coarse (subscription) and fine-grained (permission) access gates."""

from __future__ import annotations

import logging

from workspace_service.clients.entitlements import EntitlementClient
from workspace_service.clients.permissions import PermissionClient, ScopeType
from workspace_service.common.errors import AuthorizationError, PermissionDeniedError
from workspace_service.common.logging import log_context

from .principal import AuthenticatedPrincipal

logger = logging.getLogger(__name__)


class AccessGuard:
    """Gate checks evaluated on behalf of one authenticated caller."""

    def __init__(
        self,
        *,
        principal: AuthenticatedPrincipal,
        entitlements: EntitlementClient,
        permissions: PermissionClient,
    ) -> None:
        self.principal = principal
        self._entitlements = entitlements
        self._permissions = permissions

    async def require_subscription(self, subscription_id: str | None) -> str:
        """Ensure ``subscription_id`` is present and approved; return it."""

        if not subscription_id:
            raise AuthorizationError("Subscription ID is required")
        if not await self._entitlements.is_subscription_valid(
            subscription_id, self.principal.token
        ):
            logger.info(
                "access.subscription.denied",
                extra=log_context(
                    subscription_id=subscription_id, user_id=self.principal.user_id
                ),
            )
            raise AuthorizationError("Invalid or expired subscription")
        return subscription_id

    async def require_permission(
        self,
        permission: str,
        *,
        subscription_id: str,
        scope_type: ScopeType,
        scope_id: str | None = None,
    ) -> None:
        allowed = await self._permissions.check_permission(
            token=self.principal.token,
            subscription_id=subscription_id,
            permission=permission,
            scope_type=scope_type,
            scope_id=scope_id,
        )
        if not allowed:
            logger.info(
                "access.permission.denied",
                extra=log_context(
                    subscription_id=subscription_id,
                    user_id=self.principal.user_id,
                    permission=str(permission),
                    scope_type=str(scope_type),
                ),
            )
            raise PermissionDeniedError(
                str(permission), scope_type=str(scope_type), scope_id=scope_id
            )


__all__ = ["AccessGuard"]
