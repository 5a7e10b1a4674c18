"""The secure message crypto engine.

Wraps PyNaCl's ``SecretBox`` (libsodium ``crypto_secretbox``,
XSalsa20-Poly1305) and owns the hit-point / expiry state machine::

    plaintext -> encrypted -> (decrypting) -> consumed | expired | exhausted

The content and the metadata are sealed independently, each under its own
32-byte key and a fresh random nonce.  This module never hand-rolls
crypto -- sealing and opening delegate to PyNaCl.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Type

import nacl.exceptions
import nacl.utils
from nacl.secret import SecretBox

from secure_message.protocol.codec import pack, unpack
from secure_message.protocol.errors import (
    DecryptError,
    ExpiredError,
    HitPointLimitReachedError,
    InvalidKeyLengthError,
)
from secure_message.protocol.message import SecureMessage, wipe_buffer
from secure_message.protocol.types import KEY_BYTES, Meta

logger = logging.getLogger(__name__)


def _valid_key(key: bytes | None) -> bool:
    return key is not None and len(key) == KEY_BYTES


def seal(plaintext: bytes, key: bytes) -> str:
    """Encrypt *plaintext* under *key* with a fresh random nonce.

    Returns:
        The packed sealed value (see :mod:`secure_message.protocol.codec`).
    """
    nonce = nacl.utils.random(SecretBox.NONCE_SIZE)
    encrypted = SecretBox(bytes(key)).encrypt(bytes(plaintext), nonce)
    return pack(nonce, encrypted.ciphertext)


def open_sealed(sealed: str | bytes | None, key: bytes) -> bytes:
    """Decrypt a packed sealed value.

    Raises:
        DecryptError: On malformed input or failed authentication.
    """
    nonce, ciphertext = unpack(sealed)
    try:
        return SecretBox(bytes(key)).decrypt(ciphertext, nonce)
    except (nacl.exceptions.CryptoError, ValueError, TypeError) as exc:
        raise DecryptError("Authentication failed.") from exc


class Crypto:
    """Encrypt and decrypt :class:`SecureMessage` instances.

    *clock* returns the current unix time; it is injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock

    def encrypt(self, message: SecureMessage) -> SecureMessage:
        """Seal the metadata, then the content, of *message*.

        Halves that are already sealed are left untouched, so encrypting
        twice never re-seals anything.  The plaintext content is wiped once
        sealed; key fragments stay set for the caller to distribute.

        Raises:
            InvalidKeyLengthError: If a key needed for sealing isn't 32 bytes.
        """
        if not message.is_meta_encrypted():
            meta_key = message.metadata_key()
            if not _valid_key(meta_key):
                raise InvalidKeyLengthError(f"The key must be {KEY_BYTES} bytes.")
            message.set_encrypted_meta(seal(message.meta.to_json(), meta_key))

        if not message.is_content_encrypted():
            key = message.encryption_key()
            if not _valid_key(key):
                raise InvalidKeyLengthError(f"The key must be {KEY_BYTES} bytes.")
            message.set_encrypted_content(seal(message.content or b"", key))
            message.wipe_content()

        return message

    def decrypt_meta(self, message: SecureMessage) -> SecureMessage:
        """Open the sealed metadata of *message*.

        Raises:
            DecryptError: If the metadata isn't sealed, the metadata key is
                invalid, or authentication fails.
        """
        meta_key = message.metadata_key()
        if not message.is_meta_encrypted() or not _valid_key(meta_key):
            raise self._failure(
                DecryptError, "Unable to or failed to decrypt the meta data.", message
            )

        try:
            data = bytearray(open_sealed(message.sealed_meta(), meta_key))
            try:
                meta = Meta.from_json(bytes(data))
            finally:
                wipe_buffer(data)
        except (DecryptError, ValueError) as exc:
            raise self._failure(
                DecryptError, "Unable to or failed to decrypt the meta data.", message
            ) from exc

        message.set_meta(meta)
        message.wipe_encrypted_meta()
        return message

    def decrypt(self, message: SecureMessage) -> SecureMessage:
        """Decrypt *message*, enforcing expiry and hit points.

        The order of checks is fixed: metadata, content key length, expiry,
        remaining hit points, authentication.  Expiry is checked before any
        hit point is spent.

        Raises:
            DecryptError: Wrong or short key, or corrupted ciphertext.
            ExpiredError: The message is past ``expires_at``.
            HitPointLimitReachedError: No hit points are left.
        """
        if message.is_meta_encrypted():
            message = self.decrypt_meta(message)

        key = message.encryption_key()
        if not _valid_key(key):
            self._reduce_hit_points(message)
            raise self._failure(DecryptError, "Invalid key length.", message)

        if self._clock() > message.expires_at:
            raise self._failure(ExpiredError, "This secure message is expired.", message)

        if message.hit_points <= 0:
            self._reduce_hit_points(message)

        try:
            content = open_sealed(message.sealed_content(), key)
        except DecryptError as exc:
            self._reduce_hit_points(message)
            raise self._failure(
                DecryptError,
                "Unable to or failed decrypt the contents of the message.",
                message,
            ) from exc

        message.set_content(content)
        message.wipe_encrypted_content()
        message.wipe_keys()
        logger.debug("Decrypted secure message %s", message.id)
        return message

    def validate_encryption_key(self, message: SecureMessage) -> bool:
        """Check whether the content key of *message* opens its content.

        A read-only check: hit points are never spent and expiry is never
        checked.  Anyone who can call this without throttling can brute
        force the verification code, so never expose it to untrusted
        callers.
        """
        key = message.encryption_key()
        if not _valid_key(key) or not _valid_key(message.metadata_key()):
            return False

        try:
            content = bytearray(open_sealed(message.sealed_content(), key))
        except DecryptError:
            return False

        wipe_buffer(content)
        return True

    def _reduce_hit_points(self, message: SecureMessage) -> None:
        """Spend one hit point; raise when none are left."""
        message.set_hit_points(max(message.hit_points - 1, 0))
        if message.hit_points <= 0:
            raise self._failure(
                HitPointLimitReachedError,
                "The maximum number of hit points has been reached.",
                message,
            )

    def _failure(
        self, error: Type[DecryptError], reason: str, message: SecureMessage
    ) -> DecryptError:
        """Build *error* carrying *message* in its persistable state.

        Plaintext metadata is re-sealed under a fresh nonce while the
        metadata key is still usable, then every key fragment is wiped.
        """
        if not message.is_meta_encrypted() and _valid_key(message.metadata_key()):
            message.set_encrypted_meta(seal(message.meta.to_json(), message.metadata_key()))

        message.wipe_keys()
        logger.info("Secure message %s: %s", message.id, reason)
        return error(reason, message)
