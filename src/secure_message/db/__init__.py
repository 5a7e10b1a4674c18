"""Secure message record store.

Re-exports the SQLModel table, the async engine factory, and the session
helpers for convenient top-level imports::

    from secure_message.db import SecureMessageRecord, async_session_factory
"""

from secure_message.db.engine import create_async_engine_from_url
from secure_message.db.models import SecureMessageRecord
from secure_message.db.retry import db_retry, is_transient_error
from secure_message.db.session import async_session_factory, create_tables

__all__ = [
    # Engine
    "create_async_engine_from_url",
    # Retry
    "db_retry",
    "is_transient_error",
    # Session
    "async_session_factory",
    "create_tables",
    # Models
    "SecureMessageRecord",
]
