"""Transaction scope helper."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Apply every write issued inside the block all-or-nothing.

    Commits when the block exits normally and rolls back when it raises,
    re-raising the original error.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
