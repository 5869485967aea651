"""Workspace lifecycle engine.

Every mutation follows the same order: write through the repository,
commit, refresh (or evict) the cache entry, then publish the event. The
cache therefore only ever holds committed state, and a failed publish never
rolls back a committed change.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workspace_service.clients.entitlements import EntitlementClient
from workspace_service.common.errors import ValidationError
from workspace_service.common.logging import log_context
from workspace_service.db import utc_now
from workspace_service.events import WorkspaceEventPublisher

from .cache import WorkspaceCache
from .exceptions import (
    DuplicateWorkspaceError,
    InvalidTransitionError,
    NoValidUsersError,
    WorkspaceNotFoundError,
)
from .progress import ProgressState, can_transition
from .repository import WorkspacesRepository
from .schemas import (
    AddUsersResult,
    RemoveUsersResult,
    WorkspaceOut,
    WorkspacePage,
    WorkspaceProgress,
)

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("name", "description", "settings")
_NON_NULLABLE_FIELDS = {"name", "settings"}


def _deletion_token() -> str:
    return secrets.token_hex(16)


def _dedupe(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


class WorkspacesService:
    """Create, read, mutate and soft-delete workspaces and their members."""

    def __init__(
        self,
        *,
        session: AsyncSession,
        cache: WorkspaceCache,
        publisher: WorkspaceEventPublisher,
        entitlements: EntitlementClient,
    ) -> None:
        self._session = session
        self._repo = WorkspacesRepository(session)
        self._cache = cache
        self._publisher = publisher
        self._entitlements = entitlements

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_workspace(
        self, workspace_id: UUID, *, include_soft_deleted: bool = False
    ) -> WorkspaceOut | None:
        """Read-through lookup; soft-deleted records come only from the store."""

        if not include_soft_deleted:
            cached = await self._cache.get(workspace_id)
            if cached is not None:
                return cached

        record = await self._repo.get(workspace_id, include_deleted=include_soft_deleted)
        if record is None:
            return None
        workspace = WorkspaceOut.from_model(record)
        if not workspace.is_deleted:
            await self._cache.put(workspace)
        return workspace

    async def get_workspace(
        self, workspace_id: UUID, *, include_soft_deleted: bool = False
    ) -> WorkspaceOut:
        workspace = await self.find_workspace(
            workspace_id, include_soft_deleted=include_soft_deleted
        )
        if workspace is None:
            raise WorkspaceNotFoundError()
        return workspace

    async def list_workspaces(
        self,
        *,
        page: int,
        limit: int,
        include_soft_deleted: bool = False,
        subscription_id: str | None = None,
        user_id: str | None = None,
        owner_only: bool = False,
    ) -> WorkspacePage:
        records, total, total_pages = await self._repo.find_all(
            page=page,
            limit=limit,
            include_deleted=include_soft_deleted,
            subscription_id=subscription_id,
            user_id=user_id,
            owner_only=owner_only,
        )
        return WorkspacePage(
            items=[WorkspaceOut.from_model(record) for record in records],
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
        )

    async def get_progress(self, workspace_id: UUID) -> WorkspaceProgress:
        workspace = await self.get_workspace(workspace_id)
        return workspace.progress

    async def has_access(
        self, workspace_id: UUID, user_id: str, *, include_soft_deleted: bool = False
    ) -> bool:
        workspace = await self.find_workspace(
            workspace_id, include_soft_deleted=include_soft_deleted
        )
        return workspace is not None and workspace.grants_access(user_id)

    async def is_owner(
        self, workspace_id: UUID, user_id: str, *, include_soft_deleted: bool = False
    ) -> bool:
        workspace = await self.find_workspace(
            workspace_id, include_soft_deleted=include_soft_deleted
        )
        return workspace is not None and workspace.is_owned_by(user_id)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_workspace(
        self,
        *,
        name: str,
        subscription_id: str,
        creator_id: str,
        description: str | None = None,
        settings: Mapping[str, Any] | None = None,
    ) -> WorkspaceOut:
        logger.debug(
            "workspace.create.start",
            extra=log_context(subscription_id=subscription_id, user_id=creator_id, name=name),
        )
        if await self._repo.get_by_name(subscription_id=subscription_id, name=name) is not None:
            logger.warning(
                "workspace.create.duplicate",
                extra=log_context(subscription_id=subscription_id, name=name),
            )
            raise DuplicateWorkspaceError(name)

        try:
            record = await self._repo.create(
                name=name,
                description=description,
                subscription_id=subscription_id,
                settings=settings or {},
                creator_id=creator_id,
            )
            workspace_id = record.id
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise DuplicateWorkspaceError(name) from exc

        workspace = await self._refresh(workspace_id)
        await self._publisher.workspace_created(
            workspace_id=str(workspace.id),
            subscription_id=workspace.subscription_id,
            name=workspace.name,
            created_by=creator_id,
            settings=workspace.settings,
        )
        logger.info(
            "workspace.create.success",
            extra=log_context(
                workspace_id=workspace.id,
                subscription_id=subscription_id,
                user_id=creator_id,
            ),
        )
        return workspace

    async def update_workspace(
        self,
        workspace_id: UUID,
        *,
        actor_id: str,
        changes: Mapping[str, Any],
    ) -> WorkspaceOut:
        """Merge ``name``, ``description`` and ``settings``; other keys are ignored."""

        values = {
            key: changes[key]
            for key in _UPDATABLE_FIELDS
            if key in changes and not (key in _NON_NULLABLE_FIELDS and changes[key] is None)
        }
        if not values:
            raise ValidationError("No valid update data provided")

        current = await self.get_workspace(workspace_id)
        new_name = values.get("name")
        if new_name is not None and new_name != current.name:
            clash = await self._repo.get_by_name(
                subscription_id=current.subscription_id, name=new_name
            )
            if clash is not None and clash.id != workspace_id:
                raise DuplicateWorkspaceError(new_name)

        try:
            updated = await self._repo.update_fields(
                workspace_id, values=values, actor_id=actor_id
            )
            if not updated:
                raise WorkspaceNotFoundError()
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise DuplicateWorkspaceError(str(new_name or current.name)) from exc

        workspace = await self._refresh(workspace_id)
        await self._publisher.workspace_updated(
            workspace_id=str(workspace.id),
            subscription_id=workspace.subscription_id,
            name=workspace.name,
            updated_by=actor_id,
            settings=workspace.settings,
        )
        if "settings" in values:
            await self._publisher.workspace_settings_updated(
                workspace_id=str(workspace.id),
                subscription_id=workspace.subscription_id,
                updated_by=actor_id,
                settings=workspace.settings,
            )
        logger.info(
            "workspace.update.success",
            extra=log_context(
                workspace_id=workspace_id,
                user_id=actor_id,
                fields=",".join(sorted(values)),
            ),
        )
        return workspace

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def update_progress(
        self,
        workspace_id: UUID,
        target_state: ProgressState | str,
        *,
        actor_id: str,
        comment: str = "",
    ) -> WorkspaceOut:
        """Advance the progress state along the transition table."""

        try:
            target = ProgressState(target_state)
        except ValueError:
            raise ValidationError(
                f"Unknown progress state {target_state!r}",
                errors=[{"path": "state", "message": "Unknown progress state", "code": "enum"}],
            ) from None
        record = await self._repo.get(workspace_id)
        if record is None:
            raise WorkspaceNotFoundError()
        current = ProgressState(record.progress_state)
        if not can_transition(current, target):
            logger.info(
                "workspace.progress.rejected",
                extra=log_context(
                    workspace_id=workspace_id, current=current.value, target=target.value
                ),
            )
            raise InvalidTransitionError(current.value, target.value)

        at = utc_now()
        swapped = await self._repo.transition_progress(
            workspace_id,
            current=current,
            target=target,
            actor_id=actor_id,
            comment=comment or "",
            at=at,
        )
        if not swapped:
            await self._session.rollback()
            latest = await self._repo.get(workspace_id)
            if latest is None:
                raise WorkspaceNotFoundError()
            logger.warning(
                "workspace.progress.conflict",
                extra=log_context(
                    workspace_id=workspace_id,
                    expected=current.value,
                    actual=latest.progress_state,
                ),
            )
            raise InvalidTransitionError(latest.progress_state, target.value)
        await self._session.commit()

        workspace = await self._refresh(workspace_id)
        await self._publisher.progress_updated(
            workspace_id=str(workspace.id),
            subscription_id=workspace.subscription_id,
            state=target.value,
            previous_state=current.value,
            updated_by=actor_id,
            comment=comment or "",
            timestamp=at,
        )
        logger.info(
            "workspace.progress.success",
            extra=log_context(
                workspace_id=workspace_id,
                user_id=actor_id,
                previous_state=current.value,
                state=target.value,
            ),
        )
        return workspace

    # ------------------------------------------------------------------
    # Soft delete / restore
    # ------------------------------------------------------------------

    async def soft_delete(self, workspace_id: UUID, *, actor_id: str) -> WorkspaceOut:
        """Mark the workspace deleted; deleting an already deleted one is a no-op."""

        at = utc_now()
        deletion_id = _deletion_token()
        if not await self._repo.mark_deleted(
            workspace_id, deletion_id=deletion_id, at=at, actor_id=actor_id
        ):
            existing = await self._repo.get(workspace_id, include_deleted=True)
            if existing is None:
                raise WorkspaceNotFoundError()
            logger.info(
                "workspace.delete.noop",
                extra=log_context(workspace_id=workspace_id, deletion_id=existing.deletion_id),
            )
            return WorkspaceOut.from_model(existing)
        await self._session.commit()

        await self._cache.invalidate(workspace_id)
        record = await self._repo.get(workspace_id, include_deleted=True)
        if record is None:
            raise WorkspaceNotFoundError()
        workspace = WorkspaceOut.from_model(record)
        await self._publisher.workspace_deleted(
            workspace_id=str(workspace.id),
            subscription_id=workspace.subscription_id,
            deletion_id=deletion_id,
            deleted_at=at,
            deleted_by=actor_id,
        )
        logger.info(
            "workspace.delete.success",
            extra=log_context(
                workspace_id=workspace_id, user_id=actor_id, deletion_id=deletion_id
            ),
        )
        return workspace

    async def restore(self, workspace_id: UUID, *, actor_id: str) -> WorkspaceOut:
        if not await self._repo.clear_deleted(workspace_id, actor_id=actor_id):
            raise WorkspaceNotFoundError("Workspace not found or not deleted")
        await self._session.commit()

        workspace = await self._refresh(workspace_id)
        await self._publisher.workspace_restored(
            workspace_id=str(workspace.id),
            subscription_id=workspace.subscription_id,
            restored_by=actor_id,
        )
        logger.info(
            "workspace.restore.success",
            extra=log_context(workspace_id=workspace_id, user_id=actor_id),
        )
        return workspace

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def add_users(
        self,
        workspace_id: UUID,
        user_ids: Iterable[str],
        *,
        token: str,
        actor_id: str,
        role: str | None = None,
    ) -> AddUsersResult:
        """Add entitled users as members; partial success is reported, not raised."""

        workspace = await self.get_workspace(workspace_id)
        valid: list[str] = []
        invalid: list[str] = []
        for user_id in _dedupe(user_ids):
            entitled = await self._entitlements.is_user_in_subscription(
                workspace.subscription_id, user_id, token
            )
            (valid if entitled else invalid).append(user_id)

        if not valid:
            logger.info(
                "workspace.members.add.rejected",
                extra=log_context(workspace_id=workspace_id, invalid=len(invalid)),
            )
            raise NoValidUsersError(invalid)

        candidates = [user_id for user_id in valid if not workspace.grants_access(user_id)]
        added = await self._repo.add_members(workspace_id, candidates, role=role)
        if added:
            if not await self._repo.touch(workspace_id, actor_id=actor_id):
                await self._session.rollback()
                raise WorkspaceNotFoundError()
            await self._session.commit()
            workspace = await self._refresh(workspace_id)
            for user_id in added:
                await self._publisher.member_added(
                    workspace_id=str(workspace.id),
                    subscription_id=workspace.subscription_id,
                    member_id=user_id,
                    role=role,
                )

        logger.info(
            "workspace.members.add.success",
            extra=log_context(
                workspace_id=workspace_id,
                user_id=actor_id,
                added=len(added),
                invalid=len(invalid),
            ),
        )
        return AddUsersResult(workspace=workspace, added_users=added, invalid_users=invalid)

    async def remove_users(
        self,
        workspace_id: UUID,
        user_ids: Iterable[str],
        *,
        actor_id: str,
    ) -> RemoveUsersResult:
        """Remove members without entitlement checks; owners are left in place."""

        workspace = await self.get_workspace(workspace_id)
        requested = _dedupe(user_ids)
        removable = [user_id for user_id in requested if not workspace.is_owned_by(user_id)]

        dropped = await self._repo.remove_members(workspace_id, removable)
        if not await self._repo.touch(workspace_id, actor_id=actor_id):
            await self._session.rollback()
            raise WorkspaceNotFoundError()
        await self._session.commit()

        workspace = await self._refresh(workspace_id)
        removed = [
            user_id
            for user_id in requested
            if user_id not in workspace.members and user_id not in workspace.owner
        ]
        for user_id in dropped:
            await self._publisher.member_removed(
                workspace_id=str(workspace.id),
                subscription_id=workspace.subscription_id,
                member_id=user_id,
            )
        logger.info(
            "workspace.members.remove.success",
            extra=log_context(
                workspace_id=workspace_id, user_id=actor_id, removed=len(removed)
            ),
        )
        return RemoveUsersResult(workspace=workspace, removed_users=removed)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _refresh(self, workspace_id: UUID) -> WorkspaceOut:
        """Reload committed state from the store and write it through the cache."""

        record = await self._repo.get(workspace_id, include_deleted=True)
        if record is None:
            raise WorkspaceNotFoundError()
        workspace = WorkspaceOut.from_model(record)
        await self._cache.put(workspace)
        return workspace


__all__ = ["WorkspacesService"]
