"""Message id and key fragment generation.

Every random value is drawn from libsodium's CSPRNG via ``nacl.utils``.
The application-wide meta key is NOT generated here: it is configuration.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import nacl.utils

from secure_message.protocol.types import (
    DATABASE_KEY_BYTES,
    ID_LENGTH,
    STORAGE_KEY_BYTES,
    VERIFICATION_CODE_LENGTH,
)


@dataclass(frozen=True)
class KeyFragments:
    """The three per-message content key fragments.

    ``repr`` hides the key material.
    """

    storage_key: bytes
    database_key: bytes
    verification_code: str

    def __repr__(self) -> str:
        return "KeyFragments(<redacted>)"


def generate_id() -> str:
    """Return a 32 character uppercase hex id derived from 24 random bytes."""
    return hashlib.sha1(nacl.utils.random(24)).hexdigest()[:ID_LENGTH].upper()


def generate_key_fragments() -> KeyFragments:
    """Draw fresh storage key, database key and verification code.

    The verification code is rendered as lowercase hex so it can be handed
    to an end user as text.
    """
    return KeyFragments(
        storage_key=nacl.utils.random(STORAGE_KEY_BYTES),
        database_key=nacl.utils.random(DATABASE_KEY_BYTES),
        verification_code=nacl.utils.random(VERIFICATION_CODE_LENGTH // 2).hex(),
    )
