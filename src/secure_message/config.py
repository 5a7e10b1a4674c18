"""Secure message configuration via dataclass.

Priority (highest wins): constructor arg > env var > default.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from pathlib import Path

from secure_message.protocol.types import (
    DEFAULT_EXPIRES_IN,
    DEFAULT_HIT_POINTS,
    KEY_BYTES,
    META_KEY_BYTES,
)


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class Settings:
    """Configuration for the storage-backed secure message service.

    ``meta_key`` (10 bytes) protects the metadata of every message and
    ``app_key`` (32 bytes, base64 in the environment) seals every field at
    rest.  Changing either makes existing messages undecryptable.

    ``SECURE_MESSAGE_HOME`` overrides ``~/.secure_message`` (useful for
    testing / isolation).
    """

    meta_key: str | None = None
    app_key: str | None = None
    database_url: str | None = None
    storage_dir: Path | str | None = None
    hit_points: int | None = None
    expires_in: int | None = None
    log_level: str | None = None

    def __post_init__(self) -> None:
        home_env = os.getenv("SECURE_MESSAGE_HOME")
        home = Path(home_env) if home_env else Path.home() / ".secure_message"

        if self.meta_key is None:
            self.meta_key = os.getenv("SECURE_MESSAGE_META_KEY")
        if self.app_key is None:
            self.app_key = os.getenv("SECURE_MESSAGE_APP_KEY")

        if self.database_url is None:
            self.database_url = os.getenv(
                "SECURE_MESSAGE_DATABASE_URL",
                f"sqlite+aiosqlite:///{home / 'secure_messages.db'}",
            )

        if self.storage_dir is None:
            self.storage_dir = os.getenv("SECURE_MESSAGE_STORAGE_DIR") or home / "keys"
        self.storage_dir = Path(self.storage_dir)

        if self.hit_points is None:
            self.hit_points = _env_int("SECURE_MESSAGE_HIT_POINTS", DEFAULT_HIT_POINTS)
        if self.expires_in is None:
            self.expires_in = _env_int("SECURE_MESSAGE_EXPIRES_IN", DEFAULT_EXPIRES_IN)
        if self.log_level is None:
            self.log_level = os.getenv("SECURE_MESSAGE_LOG_LEVEL", "INFO")
        self.log_level = self.log_level.upper()

        if self.hit_points < 1:
            raise ValueError(f"hit_points must be at least 1, got {self.hit_points}")
        if self.expires_in < 1:
            raise ValueError(f"expires_in must be at least 1 second, got {self.expires_in}")
        if self.log_level not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level '{self.log_level}'. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )

    def require_meta_key(self) -> str:
        """Return the meta key, validating it.

        Raises:
            ValueError: If the meta key is unset or isn't 10 bytes.
        """
        if not self.meta_key:
            raise ValueError("SECURE_MESSAGE_META_KEY is not configured")
        if len(self.meta_key.encode("utf-8")) != META_KEY_BYTES:
            raise ValueError(f"The meta key must be {META_KEY_BYTES} bytes")
        return self.meta_key

    def require_app_key(self) -> bytes:
        """Return the decoded app key, validating it.

        Raises:
            ValueError: If the app key is unset, not base64 or not 32 bytes.
        """
        if not self.app_key:
            raise ValueError("SECURE_MESSAGE_APP_KEY is not configured")
        try:
            key = base64.b64decode(self.app_key, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("SECURE_MESSAGE_APP_KEY must be base64 encoded") from None
        if len(key) != KEY_BYTES:
            raise ValueError(f"SECURE_MESSAGE_APP_KEY must decode to {KEY_BYTES} bytes")
        return key
