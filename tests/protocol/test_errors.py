"""Tests for secure_message.protocol.errors module."""

from __future__ import annotations

from secure_message.protocol.errors import (
    ConcurrentUpdateError,
    DecryptError,
    ExpiredError,
    HitPointLimitReachedError,
    InvalidKeyLengthError,
    MessageNotFoundError,
    SecureMessageError,
)
from secure_message.protocol.message import SecureMessage


class TestHierarchy:
    def test_all_inherit_from_base(self):
        for cls in (
            InvalidKeyLengthError,
            MessageNotFoundError,
            ConcurrentUpdateError,
            DecryptError,
            ExpiredError,
            HitPointLimitReachedError,
        ):
            assert issubclass(cls, SecureMessageError)

    def test_terminal_errors_are_decrypt_errors(self):
        assert issubclass(ExpiredError, DecryptError)
        assert issubclass(HitPointLimitReachedError, DecryptError)
        assert not issubclass(ExpiredError, HitPointLimitReachedError)


class TestDecryptError:
    def test_carries_message(self):
        message = SecureMessage().set_id("X")
        exc = DecryptError("failed", message)
        assert str(exc) == "failed"
        assert exc.message is message

    def test_message_optional(self):
        assert DecryptError("Can not find key file.").message is None
