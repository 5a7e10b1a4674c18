"""Shared test fixtures for record store CRUD tests.

The in-memory ``engine`` fixture lives in the top-level conftest.
"""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@pytest.fixture
async def session(engine):
    """Provide an AsyncSession for each test."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess
