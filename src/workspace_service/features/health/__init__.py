"""Service health reporting."""

from .router import router

__all__ = ["router"]
