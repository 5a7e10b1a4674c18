"""Tests for Settings defaults and overrides."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from secure_message.config import Settings

_ENV_VARS = (
    "SECURE_MESSAGE_META_KEY",
    "SECURE_MESSAGE_APP_KEY",
    "SECURE_MESSAGE_DATABASE_URL",
    "SECURE_MESSAGE_STORAGE_DIR",
    "SECURE_MESSAGE_HIT_POINTS",
    "SECURE_MESSAGE_EXPIRES_IN",
    "SECURE_MESSAGE_LOG_LEVEL",
    "SECURE_MESSAGE_HOME",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


APP_KEY = base64.b64encode(b"k" * 32).decode()


class TestSettings:
    """Settings default values and derivation."""

    def test_defaults(self):
        s = Settings()
        home = Path.home() / ".secure_message"
        assert s.database_url == f"sqlite+aiosqlite:///{home / 'secure_messages.db'}"
        assert s.storage_dir == home / "keys"
        assert s.hit_points == 3
        assert s.expires_in == 86400
        assert s.log_level == "INFO"
        assert s.meta_key is None

    def test_home_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SECURE_MESSAGE_HOME", str(tmp_path))
        s = Settings()
        assert s.storage_dir == tmp_path / "keys"
        assert str(tmp_path) in s.database_url

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("SECURE_MESSAGE_HIT_POINTS", "5")
        monkeypatch.setenv("SECURE_MESSAGE_EXPIRES_IN", "60")
        monkeypatch.setenv("SECURE_MESSAGE_LOG_LEVEL", "debug")
        s = Settings()
        assert s.hit_points == 5
        assert s.expires_in == 60
        assert s.log_level == "DEBUG"

    def test_explicit_overrides_env_var(self, monkeypatch):
        monkeypatch.setenv("SECURE_MESSAGE_HIT_POINTS", "5")
        assert Settings(hit_points=2).hit_points == 2

    def test_storage_dir_coerced_to_path(self, tmp_path):
        assert Settings(storage_dir=str(tmp_path)).storage_dir == tmp_path

    def test_non_integer_env_var(self, monkeypatch):
        monkeypatch.setenv("SECURE_MESSAGE_HIT_POINTS", "many")
        with pytest.raises(ValueError, match="SECURE_MESSAGE_HIT_POINTS"):
            Settings()

    def test_hit_points_at_least_one(self):
        with pytest.raises(ValueError):
            Settings(hit_points=0)

    def test_expires_in_positive(self):
        with pytest.raises(ValueError):
            Settings(expires_in=0)

    def test_invalid_log_level(self):
        with pytest.raises(ValueError, match="log_level"):
            Settings(log_level="LOUD")


class TestKeys:
    def test_require_meta_key(self):
        assert Settings(meta_key="metaKey___").require_meta_key() == "metaKey___"

    def test_meta_key_from_env(self, monkeypatch):
        monkeypatch.setenv("SECURE_MESSAGE_META_KEY", "0123456789")
        assert Settings().require_meta_key() == "0123456789"

    def test_missing_meta_key(self):
        with pytest.raises(ValueError, match="not configured"):
            Settings().require_meta_key()

    def test_meta_key_wrong_length(self):
        with pytest.raises(ValueError):
            Settings(meta_key="short").require_meta_key()

    def test_require_app_key(self):
        assert Settings(app_key=APP_KEY).require_app_key() == b"k" * 32

    def test_missing_app_key(self):
        with pytest.raises(ValueError, match="not configured"):
            Settings().require_app_key()

    def test_app_key_not_base64(self):
        with pytest.raises(ValueError, match="base64"):
            Settings(app_key="not base64!").require_app_key()

    def test_app_key_wrong_length(self):
        with pytest.raises(ValueError, match="32 bytes"):
            Settings(app_key=base64.b64encode(b"short").decode()).require_app_key()
