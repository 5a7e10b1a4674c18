"""Application-key encryption of stored fields.

Every value written to the record store or the fragment store is sealed
once more under a 32-byte application key, so a leaked database dump or
key directory is useless without the application configuration.
"""

from __future__ import annotations

import base64
import binascii

import nacl.exceptions
import nacl.utils
from nacl.secret import SecretBox

from secure_message.protocol.errors import DecryptError


class AtRestCipher:
    """Seal and open stored values with the application key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != SecretBox.KEY_SIZE:
            raise ValueError(f"The application key must be {SecretBox.KEY_SIZE} bytes")
        self._box = SecretBox(bytes(key))

    @staticmethod
    def generate_key() -> str:
        """Return a fresh application key, base64 encoded for configuration."""
        return base64.b64encode(nacl.utils.random(SecretBox.KEY_SIZE)).decode("ascii")

    def encrypt(self, value: bytes | str) -> str:
        """Seal *value* (``str`` is UTF-8 encoded), returning base64 text."""
        if isinstance(value, str):
            value = value.encode("utf-8")
        return base64.b64encode(self._box.encrypt(value)).decode("ascii")

    def decrypt(self, token: str) -> bytes:
        """Open a value sealed by :meth:`encrypt`.

        Raises:
            DecryptError: If *token* is malformed or was sealed under another key.
        """
        try:
            return self._box.decrypt(base64.b64decode(token, validate=True))
        except (binascii.Error, ValueError, nacl.exceptions.CryptoError) as exc:
            raise DecryptError("The stored value could not be decrypted.") from exc

    def decrypt_text(self, token: str) -> str:
        """Open a sealed ASCII value, such as a packed sealed value.

        Raises:
            DecryptError: If *token* can not be opened or isn't ASCII text.
        """
        try:
            return self.decrypt(token).decode("ascii")
        except UnicodeDecodeError as exc:
            raise DecryptError("The stored value is not ASCII text.") from exc
