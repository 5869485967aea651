"""Workspace-specific error types."""

from __future__ import annotations

from workspace_service.common.errors import DuplicateError, NotFoundError, ValidationError


class WorkspaceNotFoundError(NotFoundError):
    default_detail = "Workspace not found"


class DuplicateWorkspaceError(DuplicateError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"A workspace named '{name}' already exists in this subscription",
            field="name",
        )


class InvalidTransitionError(ValidationError):
    """Requested progress state is not reachable from the current one."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid progress transition from {current} to {target}",
            errors=[
                {
                    "path": "state",
                    "message": f"Cannot transition from {current} to {target}",
                    "code": "invalid_transition",
                }
            ],
        )


class NoValidUsersError(ValidationError):
    """None of the requested users belong to the workspace's subscription."""

    def __init__(self, invalid_users: list[str]) -> None:
        self.invalid_users = invalid_users
        super().__init__(
            "No valid users to add",
            errors=[
                {"path": "userIds", "message": f"User {user_id} is not in the subscription"}
                for user_id in invalid_users
            ],
        )


__all__ = [
    "DuplicateWorkspaceError",
    "InvalidTransitionError",
    "NoValidUsersError",
    "WorkspaceNotFoundError",
]
