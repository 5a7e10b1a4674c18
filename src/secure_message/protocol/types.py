"""Core types, constants, and utility functions for secure messages."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional


# Key fragment sizes in bytes
DATABASE_KEY_BYTES = 11
STORAGE_KEY_BYTES = 11
VERIFICATION_CODE_LENGTH = 10
META_KEY_BYTES = 10

# Both the content key and the metadata key are assembled to this size
KEY_BYTES = DATABASE_KEY_BYTES + STORAGE_KEY_BYTES + VERIFICATION_CODE_LENGTH

ID_LENGTH = 32

DEFAULT_HIT_POINTS = 3

# Seconds a message stays valid when no expiry is given (one day)
DEFAULT_EXPIRES_IN = 86400


@dataclass
class Meta:
    """Hit points and expiry of a secure message.

    Serialised as compact JSON with the ``hit_points`` / ``expires_at``
    keys so sealed metadata stays readable across implementations.
    """

    hit_points: Optional[int] = None
    expires_at: Optional[int] = None

    def to_dict(self) -> dict:
        return {"hit_points": self.hit_points, "expires_at": self.expires_at}

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_dict(cls, d: dict) -> Meta:
        """Restore metadata from a decoded dict.

        Raises:
            ValueError: If a field is missing or is not an integer.
        """
        hit_points = d.get("hit_points")
        expires_at = d.get("expires_at")
        for name, value in (("hit_points", hit_points), ("expires_at", expires_at)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Metadata field {name!r} must be an integer")
        return cls(hit_points=hit_points, expires_at=expires_at)

    @classmethod
    def from_json(cls, data: bytes) -> Meta:
        decoded = json.loads(data)
        if not isinstance(decoded, dict):
            raise ValueError("Metadata must be a JSON object")
        return cls.from_dict(decoded)
