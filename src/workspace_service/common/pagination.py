"""Offset pagination helpers for list endpoints."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from workspace_service.settings import MAX_PAGE_SIZE

from .errors import ValidationError
from .schema import BaseSchema

T = TypeVar("T")


class Page(BaseSchema, Generic[T]):
    """Uniform response envelope for list endpoints."""

    items: Sequence[T]
    page: int
    limit: int
    total: int
    total_pages: int


def validate_page_window(page: int, limit: int) -> None:
    """Reject page/limit values outside ``page >= 1`` and ``1 <= limit <= MAX``."""

    errors: list[dict[str, str]] = []
    if page < 1:
        errors.append({"path": "page", "message": "Page must be greater than 0"})
    if limit < 1 or limit > MAX_PAGE_SIZE:
        errors.append(
            {"path": "limit", "message": f"Limit must be between 1 and {MAX_PAGE_SIZE}"}
        )
    if errors:
        raise ValidationError("Invalid pagination parameters", errors=errors)


async def paginate_sql(
    session: AsyncSession,
    stmt: Select,
    *,
    page: int,
    limit: int,
    order_by: Sequence[ColumnElement[Any]],
) -> tuple[list[Any], int, int]:
    """Execute ``stmt`` with limit/offset pagination.

    Returns ``(rows, total, total_pages)``.
    """

    validate_page_window(page, limit)
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = int((await session.execute(count_stmt)).scalar_one())

    result = await session.execute(
        stmt.order_by(*order_by).limit(limit).offset((page - 1) * limit)
    )
    rows = list(result.scalars().unique().all())
    return rows, total, math.ceil(total / limit) if total else 0


__all__ = ["Page", "paginate_sql", "validate_page_window"]
