from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, status

from workspace_service.app.dependencies import PrincipalDep
from workspace_service.clients.permissions import Permission, ScopeType
from workspace_service.settings import DEFAULT_PAGE_SIZE

from .deps import AccessGuardDep, WorkspacesServiceDep, require_workspace
from .schemas import (
    AddUsersResult,
    ProgressUpdate,
    RemoveUsersResult,
    WorkspaceCreate,
    WorkspaceDeleted,
    WorkspaceOut,
    WorkspacePage,
    WorkspaceProgress,
    WorkspaceUpdate,
    WorkspaceUsersAdd,
    WorkspaceUsersRemove,
)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

PageQuery = Annotated[int, Query(description="1-based page number.")]
LimitQuery = Annotated[int, Query(description="Items per page (max 100).")]
IncludeDeletedQuery = Annotated[bool, Query(alias="includeSoftDeleted")]
OwnerOnlyQuery = Annotated[bool, Query(alias="ownerOnly")]

_AUTH_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing, malformed or rejected bearer token."},
    status.HTTP_403_FORBIDDEN: {
        "description": "Subscription invalid or permission denied for the caller.",
    },
}
_WORKSPACE_RESPONSES = {
    **_AUTH_RESPONSES,
    status.HTTP_404_NOT_FOUND: {"description": "Workspace not found."},
}


@router.get(
    "",
    response_model=WorkspacePage,
    status_code=status.HTTP_200_OK,
    summary="List the caller's workspaces within a subscription",
    response_model_exclude_none=True,
    responses=_AUTH_RESPONSES,
)
async def list_workspaces(
    principal: PrincipalDep,
    guard: AccessGuardDep,
    service: WorkspacesServiceDep,
    subscription_id: Annotated[str | None, Query(alias="subscriptionId")] = None,
    page: PageQuery = 1,
    limit: LimitQuery = DEFAULT_PAGE_SIZE,
    include_soft_deleted: IncludeDeletedQuery = False,
    owner_only: OwnerOnlyQuery = False,
) -> WorkspacePage:
    subscription_id = await guard.require_subscription(subscription_id)
    return await service.list_workspaces(
        page=page,
        limit=limit,
        include_soft_deleted=include_soft_deleted,
        subscription_id=subscription_id,
        user_id=principal.user_id,
        owner_only=owner_only,
    )


@router.get(
    "/my",
    response_model=WorkspacePage,
    status_code=status.HTTP_200_OK,
    summary="List workspaces the caller owns or belongs to",
    response_model_exclude_none=True,
    responses=_AUTH_RESPONSES,
)
async def list_my_workspaces(
    principal: PrincipalDep,
    guard: AccessGuardDep,
    service: WorkspacesServiceDep,
    subscription_id: Annotated[str | None, Query(alias="subscriptionId")] = None,
    page: PageQuery = 1,
    limit: LimitQuery = DEFAULT_PAGE_SIZE,
    include_soft_deleted: IncludeDeletedQuery = False,
    owner_only: OwnerOnlyQuery = False,
) -> WorkspacePage:
    if subscription_id:
        await guard.require_subscription(subscription_id)
    return await service.list_workspaces(
        page=page,
        limit=limit,
        include_soft_deleted=include_soft_deleted,
        subscription_id=subscription_id or None,
        user_id=principal.user_id,
        owner_only=owner_only,
    )


@router.get(
    "/subscription/{subscriptionId}",
    response_model=WorkspacePage,
    status_code=status.HTTP_200_OK,
    summary="List every workspace in a subscription",
    response_model_exclude_none=True,
    responses=_AUTH_RESPONSES,
)
async def list_subscription_workspaces(
    subscription_id: Annotated[str, Path(alias="subscriptionId")],
    guard: AccessGuardDep,
    service: WorkspacesServiceDep,
    page: PageQuery = 1,
    limit: LimitQuery = DEFAULT_PAGE_SIZE,
    include_soft_deleted: IncludeDeletedQuery = False,
) -> WorkspacePage:
    await guard.require_subscription(subscription_id)
    await guard.require_permission(
        Permission.WORKSPACE_VIEW,
        subscription_id=subscription_id,
        scope_type=ScopeType.SUBSCRIPTION,
    )
    return await service.list_workspaces(
        page=page,
        limit=limit,
        include_soft_deleted=include_soft_deleted,
        subscription_id=subscription_id,
    )


@router.post(
    "",
    response_model=WorkspaceOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new workspace",
    response_model_exclude_none=True,
    responses={
        **_AUTH_RESPONSES,
        status.HTTP_400_BAD_REQUEST: {"description": "Workspace payload is invalid."},
        status.HTTP_409_CONFLICT: {
            "description": "A workspace with this name already exists in the subscription.",
        },
    },
)
async def create_workspace(
    payload: WorkspaceCreate,
    principal: PrincipalDep,
    guard: AccessGuardDep,
    service: WorkspacesServiceDep,
) -> WorkspaceOut:
    await guard.require_subscription(payload.subscription_id)
    await guard.require_permission(
        Permission.SUBSCRIPTION_WORKSPACES_CREATE,
        subscription_id=payload.subscription_id,
        scope_type=ScopeType.SUBSCRIPTION,
    )
    return await service.create_workspace(
        name=payload.name,
        description=payload.description,
        subscription_id=payload.subscription_id,
        settings=payload.settings,
        creator_id=principal.user_id,
    )


@router.get(
    "/{workspaceId}",
    response_model=WorkspaceOut,
    status_code=status.HTTP_200_OK,
    summary="Retrieve a workspace",
    response_model_exclude_none=True,
    responses=_WORKSPACE_RESPONSES,
)
async def read_workspace(
    workspace: Annotated[
        WorkspaceOut,
        Depends(
            require_workspace(Permission.WORKSPACE_VIEW, include_soft_deleted=None, member=True)
        ),
    ],
) -> WorkspaceOut:
    return workspace


@router.put(
    "/{workspaceId}",
    response_model=WorkspaceOut,
    status_code=status.HTTP_200_OK,
    summary="Update workspace name, description or settings",
    response_model_exclude_none=True,
    responses={
        **_WORKSPACE_RESPONSES,
        status.HTTP_400_BAD_REQUEST: {"description": "No updatable fields were provided."},
        status.HTTP_409_CONFLICT: {"description": "Workspace name already in use."},
    },
)
async def update_workspace(
    payload: WorkspaceUpdate,
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_UPDATE, owner=True)),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> WorkspaceOut:
    changes = payload.model_dump(exclude_unset=True, exclude_none=False, by_alias=False)
    return await service.update_workspace(
        workspace.id, actor_id=principal.user_id, changes=changes
    )


@router.delete(
    "/{workspaceId}",
    response_model=WorkspaceDeleted,
    status_code=status.HTTP_200_OK,
    summary="Soft-delete a workspace",
    responses=_WORKSPACE_RESPONSES,
)
async def delete_workspace(
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_DELETE, owner=True)),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> WorkspaceDeleted:
    deleted = await service.soft_delete(workspace.id, actor_id=principal.user_id)
    return WorkspaceDeleted(
        message="Workspace deleted successfully",
        deletion_id=deleted.deletion_id or "",
    )


@router.post(
    "/{workspaceId}/restore",
    response_model=WorkspaceOut,
    status_code=status.HTTP_200_OK,
    summary="Restore a soft-deleted workspace",
    response_model_exclude_none=True,
    responses={
        **_AUTH_RESPONSES,
        status.HTTP_404_NOT_FOUND: {"description": "Workspace not found or not deleted."},
    },
)
async def restore_workspace(
    workspace: Annotated[
        WorkspaceOut,
        Depends(
            require_workspace(
                Permission.WORKSPACE_RESTORE, include_soft_deleted=True, owner=True
            )
        ),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> WorkspaceOut:
    return await service.restore(workspace.id, actor_id=principal.user_id)


@router.get(
    "/{workspaceId}/progress",
    response_model=WorkspaceProgress,
    status_code=status.HTTP_200_OK,
    summary="Read workspace progress and its history",
    response_model_exclude_none=True,
    responses=_WORKSPACE_RESPONSES,
)
async def read_progress(
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_VIEW, member=True)),
    ],
) -> WorkspaceProgress:
    return workspace.progress


@router.patch(
    "/{workspaceId}/progress",
    response_model=WorkspaceOut,
    status_code=status.HTTP_200_OK,
    summary="Advance workspace progress",
    response_model_exclude_none=True,
    responses={
        **_WORKSPACE_RESPONSES,
        status.HTTP_400_BAD_REQUEST: {"description": "Transition is not allowed."},
    },
)
async def update_progress(
    payload: ProgressUpdate,
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_UPDATE_PROGRESS, owner=True)),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> WorkspaceOut:
    return await service.update_progress(
        workspace.id,
        payload.state,
        actor_id=principal.user_id,
        comment=payload.comment,
    )


@router.post(
    "/{workspaceId}/users",
    response_model=AddUsersResult,
    status_code=status.HTTP_200_OK,
    summary="Add subscription users to a workspace",
    response_model_exclude_none=True,
    responses={
        **_WORKSPACE_RESPONSES,
        status.HTTP_400_BAD_REQUEST: {
            "description": "None of the requested users belong to the subscription.",
        },
    },
)
async def add_users(
    payload: WorkspaceUsersAdd,
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_USERS_MANAGE)),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> AddUsersResult:
    return await service.add_users(
        workspace.id,
        payload.user_ids,
        token=principal.token,
        actor_id=principal.user_id,
        role=payload.role,
    )


@router.delete(
    "/{workspaceId}/users",
    response_model=RemoveUsersResult,
    status_code=status.HTTP_200_OK,
    summary="Remove members from a workspace",
    response_model_exclude_none=True,
    responses=_WORKSPACE_RESPONSES,
)
async def remove_users(
    payload: WorkspaceUsersRemove,
    workspace: Annotated[
        WorkspaceOut,
        Depends(require_workspace(Permission.WORKSPACE_USERS_MANAGE)),
    ],
    principal: PrincipalDep,
    service: WorkspacesServiceDep,
) -> RemoveUsersResult:
    return await service.remove_users(
        workspace.id, payload.user_ids, actor_id=principal.user_id
    )


__all__ = ["router"]
