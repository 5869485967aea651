"""Workspace document cache on top of :class:`CacheGateway`."""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from workspace_service.common.logging import log_context
from workspace_service.infra.cache import CacheGateway

from .schemas import WorkspaceOut

logger = logging.getLogger(__name__)

WORKSPACE_CACHE_PREFIX = "workspace:"


def workspace_cache_key(workspace_id: UUID | str) -> str:
    return f"{WORKSPACE_CACHE_PREFIX}{workspace_id}"


class WorkspaceCache:
    """Read-through/write-through store of non-deleted workspace documents."""

    def __init__(self, gateway: CacheGateway, *, ttl: timedelta) -> None:
        self._gateway = gateway
        self._ttl = ttl

    async def get(self, workspace_id: UUID | str) -> WorkspaceOut | None:
        key = workspace_cache_key(workspace_id)
        raw = await self._gateway.get(key)
        if raw is None:
            return None
        try:
            workspace = WorkspaceOut.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("workspace.cache.corrupt", extra=log_context(workspace_id=workspace_id))
            await self._gateway.invalidate(key)
            return None
        if workspace.is_deleted:
            await self._gateway.invalidate(key)
            return None
        return workspace

    async def put(self, workspace: WorkspaceOut) -> None:
        if workspace.is_deleted:
            await self.invalidate(workspace.id)
            return
        await self._gateway.put(
            workspace_cache_key(workspace.id),
            workspace.model_dump_json(),
            ttl=self._ttl,
        )

    async def invalidate(self, workspace_id: UUID | str) -> None:
        await self._gateway.invalidate(workspace_cache_key(workspace_id))


__all__ = ["WORKSPACE_CACHE_PREFIX", "WorkspaceCache", "workspace_cache_key"]
