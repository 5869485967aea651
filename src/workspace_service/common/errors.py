"""Domain error taxonomy shared by the service layers.

Each error carries the Problem Details ``error_type`` and HTTP status the
exception handlers render it with.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from fastapi import status


class WorkspaceServiceError(Exception):
    """Base class for errors rendered as Problem Details responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "internal_error"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class AuthenticationError(WorkspaceServiceError):
    """The caller could not be authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "unauthorized"
    default_detail = "Authentication required"


class AuthorizationError(WorkspaceServiceError):
    """The caller is authenticated but not allowed to perform the action."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "forbidden"
    default_detail = "Access denied"


class PermissionDeniedError(AuthorizationError):
    """The permission authority denied ``permission_key`` for a scope."""

    def __init__(
        self,
        permission_key: str,
        *,
        scope_type: str | None = None,
        scope_id: str | None = None,
    ) -> None:
        self.permission_key = permission_key
        self.scope_type = scope_type
        self.scope_id = scope_id
        msg = f"Permission '{permission_key}' denied"
        if scope_type:
            msg = f"{msg} for scope '{scope_type}'"
        super().__init__(msg)


class ValidationError(WorkspaceServiceError):
    """Input failed a business validation rule."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "bad_request"
    default_detail = "Validation failed"

    def __init__(
        self,
        detail: str | None = None,
        *,
        errors: Iterable[Mapping[str, str]] | None = None,
    ) -> None:
        super().__init__(detail)
        self.errors = [dict(item) for item in errors or ()]


class NotFoundError(WorkspaceServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_detail = "Resource not found"


class DuplicateError(WorkspaceServiceError):
    """A uniqueness rule rejected the write."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_detail = "Duplicate value"

    def __init__(self, detail: str | None = None, *, field: str | None = None) -> None:
        super().__init__(detail)
        self.field = field


class UpstreamServiceError(WorkspaceServiceError):
    """An upstream HTTP service failed or returned an unusable response."""

    default_detail = "Upstream service request failed"

    def __init__(self, detail: str | None = None, *, service: str) -> None:
        super().__init__(detail)
        self.service = service


__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateError",
    "NotFoundError",
    "PermissionDeniedError",
    "UpstreamServiceError",
    "ValidationError",
    "WorkspaceServiceError",
]
