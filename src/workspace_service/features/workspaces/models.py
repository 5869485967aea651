"""Database models for workspaces, their members and progress history."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workspace_service.db import (
    GUID,
    Base,
    TimestampMixin,
    UTCDateTime,
    UUIDPrimaryKeyMixin,
    utc_now,
)

from .progress import ProgressState


class MemberRelation(StrEnum):
    OWNER = "owner"
    MEMBER = "member"


class Workspace(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A named, subscription-scoped workspace."""

    __tablename__ = "workspaces"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    subscription_id: Mapped[str] = mapped_column(String(64), nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(
        MutableDict.as_mutable(JSON),
        nullable=False,
        default=dict,
    )
    progress_state: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProgressState.INITIAL.value
    )
    progress_last_updated: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utc_now
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    deletion_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    members: Mapped[list[WorkspaceMember]] = relationship(
        "WorkspaceMember",
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="WorkspaceMember.created_at",
    )
    progress_history: Mapped[list[WorkspaceProgressEntry]] = relationship(
        "WorkspaceProgressEntry",
        back_populates="workspace",
        cascade="all, delete-orphan",
        order_by="WorkspaceProgressEntry.id",
    )

    __table_args__ = (
        UniqueConstraint("name", "subscription_id"),
        Index("workspaces_subscription_id_idx", "subscription_id"),
        Index("workspaces_is_deleted_idx", "is_deleted"),
        Index("workspaces_created_at_idx", "created_at"),
    )

    def user_ids(self, relation: MemberRelation) -> list[str]:
        return [m.user_id for m in self.members if m.relation == relation]


class WorkspaceMember(Base):
    """One (workspace, user, relation) edge; owners and members are separate rows."""

    __tablename__ = "workspace_members"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    relation: Mapped[str] = mapped_column(String(16), primary_key=True)
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="members")

    __table_args__ = (Index("workspace_members_user_id_idx", "user_id"),)


class WorkspaceProgressEntry(Base):
    """Append-only progress history row."""

    __tablename__ = "workspace_progress_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)
    updated_by: Mapped[str] = mapped_column(String(64), nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False, default="")

    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="progress_history")

    __table_args__ = (
        Index("workspace_progress_entries_workspace_id_idx", "workspace_id"),
    )


__all__ = ["MemberRelation", "Workspace", "WorkspaceMember", "WorkspaceProgressEntry"]
