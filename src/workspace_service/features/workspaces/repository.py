"""Workspace persistence helpers.

Every state-changing write is a single conditional statement, so concurrent
requests cannot interleave a read-modify-write:

* progress transitions compare-and-swap on the current state,
* soft delete/restore are guarded on ``is_deleted``,
* member inserts are idempotent on the ``(workspace, user, relation)`` key.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, exists, false, insert, literal, select, true, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from workspace_service.common.pagination import paginate_sql
from workspace_service.db import utc_now

from .models import MemberRelation, Workspace, WorkspaceMember, WorkspaceProgressEntry
from .progress import ProgressState

_MEMBER_TABLE = WorkspaceMember.__table__


class WorkspacesRepository:
    """Query and write helpers for workspaces and their members."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _select() -> Select[tuple[Workspace]]:
        return select(Workspace).options(
            selectinload(Workspace.members),
            selectinload(Workspace.progress_history),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(
        self, workspace_id: UUID, *, include_deleted: bool = False
    ) -> Workspace | None:
        stmt = self._select().where(Workspace.id == workspace_id)
        if not include_deleted:
            stmt = stmt.where(Workspace.is_deleted.is_(false()))
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_by_name(self, *, subscription_id: str, name: str) -> Workspace | None:
        stmt = select(Workspace).where(
            Workspace.subscription_id == subscription_id,
            Workspace.name == name,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_all(
        self,
        *,
        page: int,
        limit: int,
        include_deleted: bool = False,
        subscription_id: str | None = None,
        user_id: str | None = None,
        owner_only: bool = False,
    ) -> tuple[list[Workspace], int, int]:
        """Return ``(workspaces, total, total_pages)`` sorted newest first."""

        stmt = self._select()
        if not include_deleted:
            stmt = stmt.where(Workspace.is_deleted.is_(false()))
        if subscription_id is not None:
            stmt = stmt.where(Workspace.subscription_id == subscription_id)
        if user_id is not None:
            relations = (
                [MemberRelation.OWNER.value]
                if owner_only
                else [MemberRelation.OWNER.value, MemberRelation.MEMBER.value]
            )
            stmt = stmt.where(
                exists().where(
                    WorkspaceMember.workspace_id == Workspace.id,
                    WorkspaceMember.user_id == user_id,
                    WorkspaceMember.relation.in_(relations),
                )
            )
        return await paginate_sql(
            self._session,
            stmt.execution_options(populate_existing=True),
            page=page,
            limit=limit,
            order_by=[Workspace.created_at.desc(), Workspace.id.desc()],
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        subscription_id: str,
        settings: Mapping[str, Any],
        creator_id: str,
    ) -> Workspace:
        now = utc_now()
        workspace = Workspace(
            name=name,
            description=description,
            subscription_id=subscription_id,
            settings=dict(settings),
            progress_state=ProgressState.INITIAL.value,
            progress_last_updated=now,
            is_deleted=False,
            created_by=creator_id,
            created_at=now,
            updated_at=now,
            members=[
                WorkspaceMember(user_id=creator_id, relation=MemberRelation.OWNER.value),
                WorkspaceMember(user_id=creator_id, relation=MemberRelation.MEMBER.value),
            ],
            progress_history=[],
        )
        self._session.add(workspace)
        await self._session.flush()
        return workspace

    async def update_fields(
        self, workspace_id: UUID, *, values: Mapping[str, Any], actor_id: str
    ) -> bool:
        """Merge ``values`` into a live workspace; always stamps ``updated_at``."""

        stmt = (
            update(Workspace)
            .where(Workspace.id == workspace_id, Workspace.is_deleted.is_(false()))
            .values(**dict(values), updated_by=actor_id, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def touch(self, workspace_id: UUID, *, actor_id: str) -> bool:
        return await self.update_fields(workspace_id, values={}, actor_id=actor_id)

    async def transition_progress(
        self,
        workspace_id: UUID,
        *,
        current: ProgressState,
        target: ProgressState,
        actor_id: str,
        comment: str,
        at: datetime,
    ) -> bool:
        """Compare-and-swap ``current -> target`` and append one history entry.

        Returns ``False`` when the row no longer holds ``current``.
        """

        stmt = (
            update(Workspace)
            .where(
                Workspace.id == workspace_id,
                Workspace.progress_state == current.value,
                Workspace.is_deleted.is_(false()),
            )
            .values(
                progress_state=target.value,
                progress_last_updated=at,
                updated_by=actor_id,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            return False

        self._session.add(
            WorkspaceProgressEntry(
                workspace_id=workspace_id,
                state=target.value,
                timestamp=at,
                updated_by=actor_id,
                comment=comment,
            )
        )
        await self._session.flush()
        return True

    async def mark_deleted(
        self, workspace_id: UUID, *, deletion_id: str, at: datetime, actor_id: str
    ) -> bool:
        stmt = (
            update(Workspace)
            .where(Workspace.id == workspace_id, Workspace.is_deleted.is_(false()))
            .values(
                is_deleted=True,
                deleted_at=at,
                deletion_id=deletion_id,
                updated_by=actor_id,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def clear_deleted(self, workspace_id: UUID, *, actor_id: str) -> bool:
        stmt = (
            update(Workspace)
            .where(Workspace.id == workspace_id, Workspace.is_deleted.is_(true()))
            .values(
                is_deleted=False,
                deleted_at=None,
                deletion_id=None,
                updated_by=actor_id,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def add_members(
        self, workspace_id: UUID, user_ids: Iterable[str], *, role: str | None = None
    ) -> list[str]:
        """Insert member rows that do not exist yet; return the user ids inserted."""

        inserted: list[str] = []
        for user_id in user_ids:
            values = {
                "workspace_id": workspace_id,
                "user_id": user_id,
                "relation": MemberRelation.MEMBER.value,
                "role": role,
                "created_at": utc_now(),
            }
            result = await self._session.execute(self._insert_if_absent(values))
            if result.rowcount == 1:
                inserted.append(user_id)
        return inserted

    async def remove_members(self, workspace_id: UUID, user_ids: Sequence[str]) -> list[str]:
        """Delete member rows for ``user_ids``; owner rows are never touched."""

        if not user_ids:
            return []
        criteria = (
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.relation == MemberRelation.MEMBER.value,
            WorkspaceMember.user_id.in_(list(user_ids)),
        )
        present = (
            await self._session.execute(select(WorkspaceMember.user_id).where(*criteria))
        ).scalars().all()
        if present:
            await self._session.execute(
                delete(WorkspaceMember)
                .where(*criteria)
                .execution_options(synchronize_session=False)
            )
        removed = set(present)
        return [user_id for user_id in user_ids if user_id in removed]

    def _insert_if_absent(self, values: dict[str, Any]):
        dialect = self._session.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite.insert(_MEMBER_TABLE).values(**values).on_conflict_do_nothing()
        if dialect == "postgresql":
            return postgresql.insert(_MEMBER_TABLE).values(**values).on_conflict_do_nothing()
        already = exists().where(
            WorkspaceMember.workspace_id == values["workspace_id"],
            WorkspaceMember.user_id == values["user_id"],
            WorkspaceMember.relation == values["relation"],
        )
        source = select(
            *[literal(value, type_=_MEMBER_TABLE.c[name].type) for name, value in values.items()]
        )
        return insert(_MEMBER_TABLE).from_select(list(values), source.where(~already))


__all__ = ["WorkspacesRepository"]
