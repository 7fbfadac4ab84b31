"""Schema creation and database probes."""

import logging

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.core.database import Base, engine

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Create any missing tables from the ORM metadata.

    Convenience for development; deployed databases are migrated with
    `alembic upgrade head`.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_connection() -> bool:
    """Whether the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health probe failed: %s", exc)
        return False


async def count_rows(session: AsyncSession, model: type[Base]) -> int:
    """Number of rows in ``model``'s table."""
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar() or 0
