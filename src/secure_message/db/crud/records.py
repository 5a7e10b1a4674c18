"""CRUD operations for SecureMessageRecord entities.

Every function takes ``session: AsyncSession`` as its first parameter.
Writes commit before returning.
"""

from __future__ import annotations

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from secure_message.db.models import SecureMessageRecord, utcnow


async def store_record(
    session: AsyncSession,
    message_id: str,
    meta: str,
    content: str,
    key: str,
) -> SecureMessageRecord:
    """Insert the record-store half of a freshly encrypted message."""
    record = SecureMessageRecord(id=message_id, meta=meta, content=content, key=key)
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def get_record(
    session: AsyncSession, message_id: str
) -> SecureMessageRecord | None:
    """Fetch a record by id, or ``None``."""
    result = await session.execute(
        select(SecureMessageRecord).where(SecureMessageRecord.id == message_id)
    )
    return result.scalars().first()


async def list_record_ids(session: AsyncSession) -> list[str]:
    """Return the ids of all stored records, oldest first."""
    result = await session.execute(
        select(SecureMessageRecord.id).order_by(SecureMessageRecord.created_at.asc())  # type: ignore[union-attr]
    )
    return list(result.scalars().all())


async def update_record_meta(
    session: AsyncSession, message_id: str, meta: str, expected_version: int
) -> bool:
    """Replace the sealed metadata if the record is still at *expected_version*.

    Compare-and-swap: returns ``False`` (and changes nothing) when another
    writer updated or deleted the record since it was read.
    """
    stmt = (
        update(SecureMessageRecord)
        .where(
            SecureMessageRecord.id == message_id,
            SecureMessageRecord.version == expected_version,
        )
        .values(meta=meta, version=expected_version + 1, updated_at=utcnow())
    )
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1  # type: ignore[union-attr]


async def delete_record(
    session: AsyncSession, message_id: str, expected_version: int | None = None
) -> bool:
    """Delete a record.  Returns whether a row was deleted.

    With *expected_version* the delete only happens if the record was not
    changed since it was read.
    """
    stmt = delete(SecureMessageRecord).where(SecureMessageRecord.id == message_id)
    if expected_version is not None:
        stmt = stmt.where(SecureMessageRecord.version == expected_version)
    result = await session.execute(stmt)
    await session.commit()
    return result.rowcount == 1  # type: ignore[union-attr]
