"""Problem Details payloads for workspace service error responses."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import status
from pydantic import Field

from .schema import BaseSchema

# status -> (problem type, title) for every status the service emits
PROBLEM_TYPES: dict[int, tuple[str, str]] = {
    status.HTTP_400_BAD_REQUEST: ("bad_request", "Bad request"),
    status.HTTP_401_UNAUTHORIZED: ("unauthorized", "Unauthorized"),
    status.HTTP_403_FORBIDDEN: ("forbidden", "Forbidden"),
    status.HTTP_404_NOT_FOUND: ("not_found", "Not found"),
    status.HTTP_409_CONFLICT: ("conflict", "Conflict"),
    status.HTTP_500_INTERNAL_SERVER_ERROR: ("internal_error", "Internal server error"),
}
_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header"})


class ProblemDetailsErrorItem(BaseSchema):
    path: str | None = None
    message: str
    code: str | None = None


class ProblemDetails(BaseSchema):
    type: str
    title: str
    status: int
    detail: str | None = None
    instance: str
    request_id: str | None = Field(default=None, alias="requestId")
    errors: list[ProblemDetailsErrorItem] | None = None


def format_error_path(loc: Iterable[Any] | None) -> str | None:
    """Turn a pydantic ``loc`` such as ``("body", "userIds", 0)`` into ``userIds[0]``."""

    path = ""
    for entry in loc or ():
        if isinstance(entry, int):
            path += f"[{entry}]"
        elif entry not in _LOCATION_PREFIXES:
            path = f"{path}.{entry}" if path else str(entry)
    return path or None


def error_items_from_pydantic(
    errors: Iterable[Mapping[str, Any]],
) -> list[ProblemDetailsErrorItem]:
    """Accept both pydantic error dicts and ``{path, message, code}`` items."""

    items: list[ProblemDetailsErrorItem] = []
    for entry in errors:
        loc = entry.get("loc", entry.get("path"))
        code = entry.get("type") or entry.get("code")
        items.append(
            ProblemDetailsErrorItem(
                path=loc if isinstance(loc, str) else format_error_path(loc),
                message=str(entry.get("msg") or entry.get("message") or "Invalid value"),
                code=str(code) if code else None,
            )
        )
    return items


def build_problem_details(
    *,
    status_code: int,
    instance: str,
    request_id: str | None,
    detail: str | None = None,
    errors: list[ProblemDetailsErrorItem] | None = None,
    error_type: str | None = None,
) -> ProblemDetails:
    default_type, title = PROBLEM_TYPES.get(status_code, ("error", "Error"))
    return ProblemDetails(
        type=error_type or default_type,
        title=title,
        status=status_code,
        detail=detail,
        instance=instance,
        request_id=request_id,
        errors=errors or None,
    )


__all__ = [
    "PROBLEM_TYPES",
    "ProblemDetails",
    "ProblemDetailsErrorItem",
    "build_problem_details",
    "error_items_from_pydantic",
    "format_error_path",
]
