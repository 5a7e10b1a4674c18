"""Async engine factory for the record store.

SQLite URLs run on ``aiosqlite``; PostgreSQL URLs on ``asyncpg`` (install
the ``postgres`` extra).  Plain driver-less URLs are rewritten to the async
driver so the same ``SECURE_MESSAGE_DATABASE_URL`` works for both.

Usage::

    engine = create_async_engine_from_url(settings.database_url)
    await create_tables(engine)
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)

_SQLITE_DEFAULTS: dict[str, Any] = {
    "connect_args": {"check_same_thread": False, "timeout": 30},
}
_POSTGRES_DEFAULTS: dict[str, Any] = {"pool_pre_ping": True}


def _async_url(url: str) -> tuple[str, dict[str, Any]]:
    """Return *url* with an async driver plus the backend's engine defaults.

    Raises:
        ValueError: If the URL scheme is not supported.
    """
    scheme, sep, rest = url.partition("://")
    if not sep:
        raise ValueError(f"Unsupported database URL scheme: {url}")

    dialect = scheme.split("+", 1)[0]
    if dialect == "sqlite":
        return f"sqlite+aiosqlite://{rest}", dict(_SQLITE_DEFAULTS)
    if dialect in ("postgresql", "postgres"):
        # asyncpg does not accept the Heroku-style postgres:// scheme
        driver = scheme if "+" in scheme and dialect == "postgresql" else "postgresql+asyncpg"
        return f"{driver}://{rest}", dict(_POSTGRES_DEFAULTS)
    raise ValueError(f"Unsupported database URL scheme: {url}")


def create_async_engine_from_url(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an ``AsyncEngine`` for the record store.

    Keyword arguments are forwarded to SQLAlchemy's ``create_async_engine``
    and override the backend defaults.

    Raises:
        ValueError: If the URL scheme is not supported.
    """
    url, options = _async_url(url)
    options.update(kwargs)
    logger.info("Creating record store engine (%s)", url.split("://", 1)[0])
    return create_async_engine(url, **options)
