"""Shared helpers for the SQL-backed stores."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from chatfs.exceptions import StorageError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def like_contains(text: str) -> str:
    """LIKE pattern matching values containing *text*."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def flush(session: AsyncSession) -> None:
    """Flush pending changes, surfacing driver failures as ``StorageError``."""
    try:
        await session.flush()
    except SQLAlchemyError as e:
        raise StorageError(str(e)) from e
