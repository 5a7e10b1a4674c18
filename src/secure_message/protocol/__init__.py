"""Secure message protocol -- split-key, self-destructing encrypted messages.

Public API re-exports for ``secure_message.protocol``.
"""

from secure_message.protocol.types import (
    DATABASE_KEY_BYTES,
    DEFAULT_EXPIRES_IN,
    DEFAULT_HIT_POINTS,
    ID_LENGTH,
    KEY_BYTES,
    META_KEY_BYTES,
    STORAGE_KEY_BYTES,
    VERIFICATION_CODE_LENGTH,
    Meta,
)

from secure_message.protocol.errors import (
    SecureMessageError,
    InvalidKeyLengthError,
    MessageNotFoundError,
    ConcurrentUpdateError,
    DecryptError,
    ExpiredError,
    HitPointLimitReachedError,
)

from secure_message.protocol.keys import (
    KeyFragments,
    generate_id,
    generate_key_fragments,
)

from secure_message.protocol.message import SecureMessage

from secure_message.protocol.codec import pack, unpack

from secure_message.protocol.crypto import Crypto, open_sealed, seal

from secure_message.protocol.factory import Factory

__all__ = [
    # Types
    "DATABASE_KEY_BYTES",
    "DEFAULT_EXPIRES_IN",
    "DEFAULT_HIT_POINTS",
    "ID_LENGTH",
    "KEY_BYTES",
    "META_KEY_BYTES",
    "STORAGE_KEY_BYTES",
    "VERIFICATION_CODE_LENGTH",
    "Meta",
    # Errors
    "SecureMessageError",
    "InvalidKeyLengthError",
    "MessageNotFoundError",
    "ConcurrentUpdateError",
    "DecryptError",
    "ExpiredError",
    "HitPointLimitReachedError",
    # Keys
    "KeyFragments",
    "generate_id",
    "generate_key_fragments",
    # Entity
    "SecureMessage",
    # Codec
    "pack",
    "unpack",
    # Crypto
    "Crypto",
    "open_sealed",
    "seal",
    # Factory
    "Factory",
]
