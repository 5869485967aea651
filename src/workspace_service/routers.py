"""API router composition for the workspace service."""

from __future__ import annotations

from fastapi import APIRouter

from .features.health.router import router as health_router
from .features.workspaces.router import router as workspaces_router

api_router = APIRouter(prefix="/v1")
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(workspaces_router)

__all__ = ["api_router"]
