"""Storage-backed secure message service.

Ties the protocol to its three storage channels:

- the record store (database) keeps the sealed metadata, the sealed
  content and the database key;
- the fragment store (separate medium) keeps the storage key;
- the end user keeps the verification code.

Every stored value is sealed once more with the application key.

Decrypt attempts on one id are serialised twice: an in-process
``asyncio.Lock`` per id, and a compare-and-swap on the record ``version``
for writers in other processes.  An attempt that loses the race is re-run
against the fresh record, so concurrent wrong codes can never spend fewer
hit points than attempts made.
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from secure_message.config import Settings
from secure_message.db.crud.records import (
    delete_record,
    get_record,
    list_record_ids,
    store_record,
    update_record_meta,
)
from secure_message.db.models import SecureMessageRecord
from secure_message.db.retry import db_retry
from secure_message.db.session import async_session_factory
from secure_message.events import (
    DecryptionFailed,
    EventDispatcher,
    HitPointLimitReached,
    SecureMessageEvent,
    SecureMessageExpired,
)
from secure_message.protocol.errors import (
    ConcurrentUpdateError,
    DecryptError,
    ExpiredError,
    HitPointLimitReachedError,
    MessageNotFoundError,
)
from secure_message.protocol.factory import Factory
from secure_message.protocol.message import BytesLike, SecureMessage
from secure_message.protocol.types import DEFAULT_EXPIRES_IN, DEFAULT_HIT_POINTS
from secure_message.storage.at_rest import AtRestCipher
from secure_message.storage.fragments import FileFragmentStore, FragmentStore

logger = logging.getLogger(__name__)

# Decrypt attempts re-run at most this often after losing a race
MAX_ATTEMPTS = 3


class SecureMessageService:
    """Encrypt, store, decrypt and destroy secure messages.

    Usage::

        service = SecureMessageService.from_settings(settings, engine)
        message = await service.encrypt("launch codes")
        # hand message.id and message.verification_code to the recipient
        content = await service.decrypt(message.id, verification_code)
    """

    def __init__(
        self,
        factory: Factory,
        sessions: async_sessionmaker[AsyncSession],
        fragments: FragmentStore,
        cipher: AtRestCipher,
        dispatcher: EventDispatcher | None = None,
        *,
        hit_points: int = DEFAULT_HIT_POINTS,
        expires_in: int = DEFAULT_EXPIRES_IN,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._factory = factory
        self._sessions = sessions
        self._fragments = fragments
        self._cipher = cipher
        self.dispatcher = dispatcher or EventDispatcher()
        self._hit_points = hit_points
        self._expires_in = expires_in
        self._clock = clock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        engine: AsyncEngine,
        dispatcher: EventDispatcher | None = None,
    ) -> SecureMessageService:
        """Build a service with a file fragment store from *settings*.

        Raises:
            ValueError: If the meta key or the app key is missing or invalid.
        """
        return cls(
            factory=Factory(meta_key=settings.require_meta_key()),
            sessions=async_session_factory(engine),
            fragments=FileFragmentStore(settings.storage_dir),
            cipher=AtRestCipher(settings.require_app_key()),
            dispatcher=dispatcher,
            hit_points=settings.hit_points,
            expires_in=settings.expires_in,
        )

    # ------------------------------------------------------------------
    # Encrypt
    # ------------------------------------------------------------------

    async def encrypt(
        self,
        content: BytesLike,
        expires_at: int | None = None,
        hit_points: int | None = None,
    ) -> SecureMessage:
        """Encrypt and store *content*.

        Returns the encrypted message with every key fragment wiped except
        the verification code, which must be handed to the recipient.
        """
        if expires_at is None:
            expires_at = int(self._clock()) + self._expires_in
        if hit_points is None:
            hit_points = self._hit_points

        message = self._factory.encrypt(
            self._factory.make(content, hit_points=hit_points, expires_at=expires_at)
        )

        self._fragments.put(message.id, self._cipher.encrypt(message.storage_key))
        try:
            await self._store(message)
        except Exception:
            self._fragments.delete(message.id)
            message.wipe_keys()
            raise

        message.wipe_keys(wipe_verification_code=False)
        logger.info("Stored secure message %s (expires at %d)", message.id, expires_at)
        return message

    @db_retry()
    async def _store(self, message: SecureMessage) -> None:
        async with self._sessions() as session:
            await store_record(
                session,
                message.id,
                meta=self._cipher.encrypt(message.encrypted_meta),
                content=self._cipher.encrypt(message.encrypted_content),
                key=self._cipher.encrypt(message.database_key),
            )

    # ------------------------------------------------------------------
    # Decrypt
    # ------------------------------------------------------------------

    async def decrypt(self, message_id: str, verification_code: str) -> bytes:
        """Return the decrypted content of a stored message."""
        message = await self.decrypt_message(message_id, verification_code)
        return message.content

    async def decrypt_message(
        self, message_id: str, verification_code: str
    ) -> SecureMessage:
        """Decrypt a stored message and destroy it.

        On failure the updated hit points are persisted, an event is
        dispatched and the error is re-raised.  Expired and exhausted
        messages are destroyed.

        Raises:
            MessageNotFoundError: No record exists for *message_id*.
            DecryptError: Wrong code, missing key file or corrupted data.
            ExpiredError: The message is expired.
            HitPointLimitReachedError: The last hit point was spent.
            ConcurrentUpdateError: The record kept changing under the attempt.
        """
        async with self._lock(message_id):
            for _ in range(MAX_ATTEMPTS):
                record = await self._load(message_id)
                try:
                    message = self._rebuild(record).set_verification_code(verification_code)
                    message.set_storage_key(self._load_storage_key(record.id))
                    decrypted = self._factory.decrypt(message)
                except DecryptError as exc:
                    if await self._record_failure(record, exc):
                        raise
                    continue

                if await self._delete(record.id, record.version):
                    self._fragments.delete(record.id)
                    logger.info("Secure message %s consumed and destroyed", record.id)
                    return decrypted
                decrypted.wipe_content()

        raise ConcurrentUpdateError(
            f"Secure message {message_id} changed during {MAX_ATTEMPTS} decrypt attempts"
        )

    async def _record_failure(self, record: SecureMessageRecord, exc: DecryptError) -> bool:
        """Persist the outcome of a failed attempt and dispatch its event.

        Returns ``False`` when the record changed since it was read; nothing
        is persisted or dispatched then and the attempt must be re-run.
        """
        if isinstance(exc, (ExpiredError, HitPointLimitReachedError)):
            if not await self._delete(record.id, record.version):
                return False
            self._fragments.delete(record.id)
            logger.info("Secure message %s destroyed: %s", record.id, exc)

        elif exc.message is not None and exc.message.is_meta_encrypted():
            sealed = exc.message.encrypted_meta
            if sealed != self._cipher.decrypt_text(record.meta):
                if not await self._update_meta(record.id, sealed, record.version):
                    return False

        self.dispatcher.dispatch(self._event_for(exc, record.id))
        return True

    @staticmethod
    def _event_for(exc: DecryptError, message_id: str) -> SecureMessageEvent:
        if isinstance(exc, HitPointLimitReachedError):
            return HitPointLimitReached(message_id)
        if isinstance(exc, ExpiredError):
            return SecureMessageExpired(message_id)
        return DecryptionFailed(message_id)

    # ------------------------------------------------------------------
    # Read-only checks
    # ------------------------------------------------------------------

    async def check_verification_code(self, message_id: str, verification_code: str) -> bool:
        """Return whether *verification_code* opens the message.

        Spends no hit point and ignores expiry.  Callers MUST throttle
        access to this method: unthrottled, it lets anyone brute force the
        verification code.

        Raises:
            MessageNotFoundError: No record exists for *message_id*.
            DecryptError: The key file is missing.
        """
        record = await self._load(message_id)
        message = self._rebuild(record).set_verification_code(verification_code)
        message.set_storage_key(self._load_storage_key(record.id))
        try:
            return self._factory.validate_encryption_key(message)
        finally:
            message.wipe_keys()

    async def get_meta(self, message_id: str) -> SecureMessage:
        """Return a message with only its decrypted metadata set.

        Raises:
            MessageNotFoundError: No record exists for *message_id*.
            DecryptError: The key file is missing or the metadata can't be opened.
        """
        record = await self._load(message_id)
        message = self._rebuild(record)
        message.wipe_encrypted_content()
        message.set_storage_key(self._load_storage_key(record.id))
        message = self._factory.decrypt_meta(message)
        message.wipe_keys()
        return message

    def has_fragment(self, message_id: str) -> bool:
        return self._fragments.exists(message_id)

    # ------------------------------------------------------------------
    # Destroy / list
    # ------------------------------------------------------------------

    async def destroy(self, message_id: str) -> None:
        """Remove the record and the key file of a message."""
        await self._delete(message_id)
        self._fragments.delete(message_id)
        logger.info("Destroyed secure message %s", message_id)

    @db_retry()
    async def list_ids(self) -> list[str]:
        async with self._sessions() as session:
            return await list_record_ids(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, message_id: str) -> asyncio.Lock:
        lock = self._locks.get(message_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[message_id] = lock
        return lock

    @db_retry()
    async def _load(self, message_id: str) -> SecureMessageRecord:
        async with self._sessions() as session:
            record = await get_record(session, message_id)
        if record is None:
            raise MessageNotFoundError(f"Secure message {message_id} does not exist")
        return record

    @db_retry()
    async def _update_meta(self, message_id: str, sealed_meta: str, version: int) -> bool:
        async with self._sessions() as session:
            return await update_record_meta(
                session, message_id, self._cipher.encrypt(sealed_meta), version
            )

    @db_retry()
    async def _delete(self, message_id: str, version: int | None = None) -> bool:
        async with self._sessions() as session:
            return await delete_record(session, message_id, expected_version=version)

    def _rebuild(self, record: SecureMessageRecord) -> SecureMessage:
        """Rebuild the record-store half of a message."""
        return (
            SecureMessage()
            .set_id(record.id)
            .set_database_key(self._cipher.decrypt(record.key))
            .set_encrypted_meta(self._cipher.decrypt_text(record.meta))
            .set_encrypted_content(self._cipher.decrypt_text(record.content))
        )

    def _load_storage_key(self, message_id: str) -> bytes:
        try:
            sealed = self._fragments.get(message_id)
        except KeyError:
            raise DecryptError("Can not find key file.") from None
        return self._cipher.decrypt(sealed)
