"""Fine-grained permission checks against the role service.

Every failure (transport, HTTP status, payload shape) is treated as a
denial. Results are never cached.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

import httpx

from workspace_service.common.logging import log_context

from .base import UpstreamClient

logger = logging.getLogger(__name__)

ROLE_TEMPLATE_TYPE = "RoleTemplate"


class Permission(StrEnum):
    WORKSPACE_VIEW = "WORKSPACE.VIEW"
    WORKSPACE_MANAGE = "WORKSPACE.MANAGE"
    WORKSPACE_UPDATE = "WORKSPACE.UPDATE"
    WORKSPACE_DELETE = "WORKSPACE.DELETE"
    WORKSPACE_RESTORE = "WORKSPACE.RESTORE"
    WORKSPACE_UPDATE_PROGRESS = "WORKSPACE.UPDATE_PROGRESS"
    WORKSPACE_USERS_MANAGE = "WORKSPACE.USERS.MANAGE"
    SUBSCRIPTION_WORKSPACES_CREATE = "SUBSCRIPTION.WORKSPACES.CREATE"


class ScopeType(StrEnum):
    SUBSCRIPTION = "subscription"
    WORKSPACE = "workspace"


class PermissionClient(UpstreamClient):
    """``POST /api/v1/roles/check-permission``."""

    service_name = "role"

    async def check_permission(
        self,
        *,
        token: str,
        subscription_id: str,
        permission: str,
        scope_type: str,
        scope_id: str | None = None,
    ) -> bool:
        body: dict[str, Any] = {
            "subscriptionId": subscription_id,
            "requiredPermission": str(permission),
            "roleTemplateType": ROLE_TEMPLATE_TYPE,
            "scopeType": str(scope_type),
        }
        if scope_id is not None:
            body["scopeId"] = scope_id

        ctx = log_context(
            subscription_id=subscription_id,
            permission=str(permission),
            scope_type=str(scope_type),
            scope_id=scope_id,
        )
        try:
            response = await self._send(
                "POST",
                "/api/v1/roles/check-permission",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError:
            logger.warning("permission.check.unavailable", extra=ctx)
            return False
        if response.is_error:
            logger.warning(
                "permission.check.rejected", extra={**ctx, "status_code": response.status_code}
            )
            return False

        try:
            payload = response.json()
        except ValueError:
            logger.warning("permission.check.malformed", extra=ctx)
            return False
        data = payload.get("data") if isinstance(payload, dict) else None
        allowed = isinstance(data, dict) and data.get("hasPermission") is True
        logger.debug("permission.check.result", extra={**ctx, "allowed": allowed})
        return allowed

    async def can_view_workspace(
        self, *, token: str, subscription_id: str, workspace_id: str
    ) -> bool:
        return await self.check_permission(
            token=token,
            subscription_id=subscription_id,
            permission=Permission.WORKSPACE_VIEW,
            scope_type=ScopeType.WORKSPACE,
            scope_id=workspace_id,
        )

    async def can_manage_workspace(
        self, *, token: str, subscription_id: str, workspace_id: str
    ) -> bool:
        return await self.check_permission(
            token=token,
            subscription_id=subscription_id,
            permission=Permission.WORKSPACE_MANAGE,
            scope_type=ScopeType.WORKSPACE,
            scope_id=workspace_id,
        )

    async def can_manage_workspace_users(
        self, *, token: str, subscription_id: str, workspace_id: str
    ) -> bool:
        return await self.check_permission(
            token=token,
            subscription_id=subscription_id,
            permission=Permission.WORKSPACE_USERS_MANAGE,
            scope_type=ScopeType.WORKSPACE,
            scope_id=workspace_id,
        )

    async def can_create_workspace(self, *, token: str, subscription_id: str) -> bool:
        return await self.check_permission(
            token=token,
            subscription_id=subscription_id,
            permission=Permission.SUBSCRIPTION_WORKSPACES_CREATE,
            scope_type=ScopeType.SUBSCRIPTION,
        )


__all__ = ["Permission", "PermissionClient", "ROLE_TEMPLATE_TYPE", "ScopeType"]
