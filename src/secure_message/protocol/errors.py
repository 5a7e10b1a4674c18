"""Secure message exception hierarchy.

All exceptions inherit from :class:`SecureMessageError`.  Decrypt failures
carry the entity as it must be persisted after the failed attempt: its
metadata re-sealed with the updated hit-point count and every key fragment
wiped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from secure_message.protocol.message import SecureMessage


class SecureMessageError(Exception):
    """Base exception for all secure message errors."""


class InvalidKeyLengthError(SecureMessageError):
    """Raised when a key or key fragment has the wrong length."""


class MessageNotFoundError(SecureMessageError):
    """Raised when no stored record exists for a message id."""


class ConcurrentUpdateError(SecureMessageError):
    """Raised when a record kept changing under a decrypt attempt."""


class DecryptError(SecureMessageError):
    """Raised when a secure message (or its metadata) can not be decrypted.

    ``message`` is the entity to persist after the failure, or ``None``
    when the failure happened before an entity was available.
    """

    def __init__(self, reason: str = "", message: SecureMessage | None = None) -> None:
        super().__init__(reason)
        self.message = message


class ExpiredError(DecryptError):
    """Raised when the message is past its expiry timestamp."""


class HitPointLimitReachedError(DecryptError):
    """Raised when the message has no hit points left."""
