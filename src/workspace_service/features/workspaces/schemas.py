from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import ConfigDict, Field, StringConstraints

from workspace_service.common.pagination import Page
from workspace_service.common.schema import BaseSchema

from .models import MemberRelation, Workspace
from .progress import ProgressState

WorkspaceName = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
Description = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
Identifier = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)
]


class ProgressHistoryEntry(BaseSchema):
    state: ProgressState
    timestamp: datetime
    updated_by: str
    comment: str = ""


class WorkspaceProgress(BaseSchema):
    state: ProgressState
    last_updated: datetime
    history: list[ProgressHistoryEntry] = Field(default_factory=list)


class WorkspaceOut(BaseSchema):
    """Workspace document as returned by the API and stored in the cache."""

    id: UUID
    name: str
    description: str | None = None
    subscription_id: str
    owner: list[str]
    members: list[str]
    member_roles: dict[str, str] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    progress: WorkspaceProgress
    is_deleted: bool = False
    deleted_at: datetime | None = None
    deletion_id: str | None = None
    created_by: str
    updated_by: str | None = None
    created_at: datetime
    updated_at: datetime

    def is_owned_by(self, user_id: str) -> bool:
        return user_id in self.owner

    def grants_access(self, user_id: str) -> bool:
        return user_id in self.owner or user_id in self.members

    @classmethod
    def from_model(cls, workspace: Workspace) -> WorkspaceOut:
        member_rows = [m for m in workspace.members if m.relation == MemberRelation.MEMBER]
        return cls(
            id=workspace.id,
            name=workspace.name,
            description=workspace.description,
            subscription_id=workspace.subscription_id,
            owner=workspace.user_ids(MemberRelation.OWNER),
            members=[m.user_id for m in member_rows],
            member_roles={m.user_id: m.role for m in member_rows if m.role},
            settings=dict(workspace.settings or {}),
            progress=WorkspaceProgress(
                state=workspace.progress_state,
                last_updated=workspace.progress_last_updated,
                history=[
                    ProgressHistoryEntry(
                        state=entry.state,
                        timestamp=entry.timestamp,
                        updated_by=entry.updated_by,
                        comment=entry.comment,
                    )
                    for entry in workspace.progress_history
                ],
            ),
            is_deleted=workspace.is_deleted,
            deleted_at=workspace.deleted_at,
            deletion_id=workspace.deletion_id,
            created_by=workspace.created_by,
            updated_by=workspace.updated_by,
            created_at=workspace.created_at,
            updated_at=workspace.updated_at,
        )


class WorkspaceCreate(BaseSchema):
    name: WorkspaceName
    description: Description | None = None
    subscription_id: Identifier
    settings: dict[str, Any] = Field(default_factory=dict)


class WorkspaceUpdate(BaseSchema):
    """Partial update; identity, ownership and soft-delete fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    name: WorkspaceName | None = None
    description: Description | None = None
    settings: dict[str, Any] | None = None


class ProgressUpdate(BaseSchema):
    state: ProgressState
    comment: Annotated[str, StringConstraints(max_length=1000)] = ""


class WorkspaceUsersAdd(BaseSchema):
    user_ids: list[Identifier] = Field(min_length=1)
    role: Identifier | None = None


class WorkspaceUsersRemove(BaseSchema):
    user_ids: list[Identifier] = Field(min_length=1)


class AddUsersResult(BaseSchema):
    workspace: WorkspaceOut
    added_users: list[str]
    invalid_users: list[str]


class RemoveUsersResult(BaseSchema):
    workspace: WorkspaceOut
    removed_users: list[str]


class WorkspaceDeleted(BaseSchema):
    message: str
    deletion_id: str


class WorkspacePage(Page[WorkspaceOut]):
    """Paginated collection of workspaces."""


__all__ = [
    "AddUsersResult",
    "ProgressHistoryEntry",
    "ProgressUpdate",
    "RemoveUsersResult",
    "WorkspaceCreate",
    "WorkspaceDeleted",
    "WorkspaceOut",
    "WorkspacePage",
    "WorkspaceProgress",
    "WorkspaceUpdate",
    "WorkspaceUsersAdd",
    "WorkspaceUsersRemove",
]
