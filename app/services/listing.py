"""Pagination helper shared by every list endpoint."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class Page:
    items: list[Any]
    page: int
    limit: int
    total: int

    @property
    def meta(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": math.ceil(self.total / self.limit) if self.limit else 0,
        }


async def paginate(session: AsyncSession, stmt: Select, page: int, limit: int) -> Page:
    """Run `stmt` for one page and count the full filtered result."""
    total = await session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    rows = await session.scalars(stmt.offset((page - 1) * limit).limit(limit))
    return Page(items=list(rows), page=page, limit=limit, total=total or 0)
