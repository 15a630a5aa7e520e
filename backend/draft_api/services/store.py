from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import Executable


async def execute_step(db: AsyncSession, stmt: Executable) -> Any:
    """
    Run one statement and commit it on its own.

    Multi-step mutations are sagas, not transactions: each step is durable as soon as it
    returns, and a later failure is undone by explicit compensation (see compensation.py).
    On failure the session is rolled back so it stays usable for that compensation.
    """
    try:
        result = await db.execute(stmt)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    return result
