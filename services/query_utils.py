"""
Shared query helpers for the service layer: counting and page windows.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


async def count_rows(session: AsyncSession, model: Any, *conditions: Any) -> int:
    stmt = select(func.count()).select_from(model)
    if conditions:
        stmt = stmt.where(*conditions)
    return await session.scalar(stmt) or 0


def page_window(stmt: Select, page: int, limit: int) -> Select:
    """Apply skip/limit for a 1-based page"""
    return stmt.offset((page - 1) * limit).limit(limit)
