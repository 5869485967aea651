"""Workspace lifecycle feature: models, repository, service and routes."""

from .router import router

__all__ = ["router"]
