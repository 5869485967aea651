"""FastAPI dependency helpers for the workspaces feature."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Path, Query

from workspace_service.app.dependencies import (
    PrincipalDep,
    get_access_guard,
    get_workspaces_service,
)
from workspace_service.clients.permissions import Permission, ScopeType
from workspace_service.common.errors import AuthorizationError
from workspace_service.core.auth import AccessGuard, AuthenticatedPrincipal

from .schemas import WorkspaceOut
from .service import WorkspacesService

WorkspacesServiceDep = Annotated[WorkspacesService, Depends(get_workspaces_service)]
AccessGuardDep = Annotated[AccessGuard, Depends(get_access_guard)]
WorkspaceIdPath = Annotated[
    UUID,
    Path(description="Workspace identifier", alias="workspaceId"),
]

WorkspaceDependency = Callable[..., Awaitable[WorkspaceOut]]


def require_workspace(
    permission: Permission,
    *,
    include_soft_deleted: bool | None = False,
    owner: bool = False,
    member: bool = False,
) -> WorkspaceDependency:
    """Return a dependency that loads a workspace and enforces its gates.

    The workspace is loaded first (404 when missing), then the subscription
    it belongs to must be valid and ``permission`` must be granted at
    workspace scope. ``owner``/``member`` add the ownership or access check.
    ``include_soft_deleted=None`` defers to the ``includeSoftDeleted`` query
    parameter.
    """

    async def authorize(
        workspace_id: UUID,
        include_deleted: bool,
        principal: AuthenticatedPrincipal,
        guard: AccessGuard,
        service: WorkspacesService,
    ) -> WorkspaceOut:
        workspace = await service.get_workspace(
            workspace_id, include_soft_deleted=include_deleted
        )
        await guard.require_subscription(workspace.subscription_id)
        await guard.require_permission(
            permission,
            subscription_id=workspace.subscription_id,
            scope_type=ScopeType.WORKSPACE,
            scope_id=str(workspace.id),
        )
        if owner and not workspace.is_owned_by(principal.user_id):
            raise AuthorizationError("Only workspace owners can perform this action")
        if member and not workspace.grants_access(principal.user_id):
            raise AuthorizationError("You do not have access to this workspace")
        return workspace

    if include_soft_deleted is None:

        async def from_query(
            workspace_id: WorkspaceIdPath,
            principal: PrincipalDep,
            guard: AccessGuardDep,
            service: WorkspacesServiceDep,
            include_deleted: Annotated[bool, Query(alias="includeSoftDeleted")] = False,
        ) -> WorkspaceOut:
            return await authorize(workspace_id, include_deleted, principal, guard, service)

        return from_query

    async def fixed(
        workspace_id: WorkspaceIdPath,
        principal: PrincipalDep,
        guard: AccessGuardDep,
        service: WorkspacesServiceDep,
    ) -> WorkspaceOut:
        return await authorize(workspace_id, include_soft_deleted, principal, guard, service)

    return fixed


__all__ = [
    "AccessGuardDep",
    "WorkspaceIdPath",
    "WorkspacesServiceDep",
    "require_workspace",
]
