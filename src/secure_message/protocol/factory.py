"""Factory for new secure messages.

Creates entities with a fresh id, hands them fresh key fragments at
encryption time, and injects the application-wide meta key before every
call into the crypto engine.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from secure_message.protocol.crypto import Crypto
from secure_message.protocol.errors import InvalidKeyLengthError
from secure_message.protocol.keys import generate_id, generate_key_fragments
from secure_message.protocol.message import BytesLike, SecureMessage
from secure_message.protocol.types import (
    DEFAULT_EXPIRES_IN,
    DEFAULT_HIT_POINTS,
    META_KEY_BYTES,
)


class Factory:
    """Make, encrypt and decrypt secure messages with one meta key.

    Usage::

        factory = Factory(meta_key=b"0123456789")
        message = factory.encrypt(factory.make("Hello, world!"))
        # store message.encrypted_content, message.encrypted_meta and
        # message.database_key; store message.storage_key elsewhere;
        # give message.verification_code to the recipient.
    """

    def __init__(
        self,
        meta_key: BytesLike | None = None,
        crypto: Crypto | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._meta_key: bytes | None = None
        if meta_key is not None:
            self.set_meta_key(meta_key)
        self._clock = clock
        self.crypto = crypto or Crypto(clock=clock)

    def set_meta_key(self, key: BytesLike) -> Factory:
        """Set the application-wide meta key.

        Raises:
            InvalidKeyLengthError: If the key isn't exactly 10 bytes.
        """
        raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
        if len(raw) != META_KEY_BYTES:
            raise InvalidKeyLengthError(f"The meta key must be {META_KEY_BYTES} bytes.")
        self._meta_key = raw
        return self

    def make(
        self,
        content: BytesLike,
        hit_points: int = DEFAULT_HIT_POINTS,
        expires_at: int | None = None,
    ) -> SecureMessage:
        """Create a new, not yet encrypted, secure message."""
        if expires_at is None:
            expires_at = int(self._clock()) + DEFAULT_EXPIRES_IN
        return (
            SecureMessage()
            .set_id(generate_id())
            .set_content(content)
            .set_hit_points(hit_points)
            .set_expires_at(expires_at)
        )

    def encrypt(self, message: SecureMessage) -> SecureMessage:
        """Give *message* fresh key fragments and encrypt it.

        Fragments already set on *message* are replaced.  The returned
        message still holds every fragment; distribute them, then call
        ``wipe_keys``.
        """
        fragments = generate_key_fragments()
        message.set_storage_key(fragments.storage_key)
        message.set_database_key(fragments.database_key)
        message.set_verification_code(fragments.verification_code)
        self._inject_meta_key(message)
        return self.crypto.encrypt(message)

    def decrypt(self, message: SecureMessage) -> SecureMessage:
        """Decrypt *message*; all content key fragments must be set."""
        self._inject_meta_key(message)
        return self.crypto.decrypt(message)

    def decrypt_meta(self, message: SecureMessage) -> SecureMessage:
        self._inject_meta_key(message)
        return self.crypto.decrypt_meta(message)

    def validate_encryption_key(self, message: SecureMessage) -> bool:
        self._inject_meta_key(message)
        return self.crypto.validate_encryption_key(message)

    def _inject_meta_key(self, message: SecureMessage) -> None:
        if self._meta_key is not None:
            message.set_meta_key(self._meta_key)
