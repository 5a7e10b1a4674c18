"""AsyncSession factory and table management."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel

import secure_message.db.models  # noqa: F401 -- registers tables with SQLModel.metadata

logger = logging.getLogger(__name__)


def async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a new ``async_sessionmaker`` bound to *engine*.

    Sessions use ``expire_on_commit=False`` so records stay readable after
    commit.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create the ``secure_messages`` table if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Secure message tables created")
