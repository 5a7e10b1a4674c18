"""SQLModel table definition for stored secure messages.

Every text column holds a value sealed with the application key, so the
database alone yields neither the metadata nor the database key fragment.

Usage::

    from secure_message.db.models import SecureMessageRecord
    from sqlmodel import SQLModel, create_engine

    engine = create_engine("sqlite:///secure_messages.db")
    SQLModel.metadata.create_all(engine)
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware current UTC time for timestamp columns."""
    return datetime.now(timezone.utc)


class SecureMessageRecord(SQLModel, table=True):
    """The record-store half of a secure message.

    ``version`` increases on every metadata update and backs the
    compare-and-swap in :func:`secure_message.db.crud.records.update_record_meta`.
    """

    __tablename__ = "secure_messages"

    id: str = Field(primary_key=True, max_length=32)
    meta: str
    content: str
    key: str
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now()})
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), sa_column_kwargs={"server_default": func.now(), "onupdate": func.now()})
