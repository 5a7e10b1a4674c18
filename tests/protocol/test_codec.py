"""Tests for secure_message.protocol.codec module."""

from __future__ import annotations

import base64
import json

import pytest

from secure_message.protocol.codec import pack, unpack
from secure_message.protocol.errors import DecryptError


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class TestPack:
    def test_layout(self):
        sealed = pack(b"n" * 24, b"ciphertext")
        inner = json.loads(base64.b64decode(sealed))
        assert inner == [_b64(b"n" * 24), _b64(b"ciphertext")]

    def test_compact_json(self):
        sealed = pack(b"a", b"b")
        assert base64.b64decode(sealed) == b'["YQ==","Yg=="]'

    def test_unpack_reverses_pack(self):
        assert unpack(pack(b"nonce", b"body")) == (b"nonce", b"body")


class TestUnpackMalformed:
    @pytest.mark.parametrize("sealed", [None, ""])
    def test_empty(self, sealed):
        with pytest.raises(DecryptError):
            unpack(sealed)

    def test_not_base64(self):
        with pytest.raises(DecryptError):
            unpack("!!not base64!!")

    def test_not_json(self):
        with pytest.raises(DecryptError):
            unpack(_b64(b"not json"))

    def test_not_a_list(self):
        with pytest.raises(DecryptError):
            unpack(_b64(b'{"a":1}'))

    def test_wrong_arity(self):
        with pytest.raises(DecryptError):
            unpack(_b64(b'["YQ=="]'))

    def test_non_string_members(self):
        with pytest.raises(DecryptError):
            unpack(_b64(b"[1,2]"))

    def test_inner_not_base64(self):
        with pytest.raises(DecryptError):
            unpack(_b64(b'["YQ==","%%%"]'))

    def test_php_escaped_slashes_accepted(self):
        # json_encode escapes "/" as "\/"
        inner = b'["ab\\/c","YQ=="]'
        nonce, body = unpack(_b64(inner))
        assert nonce == base64.b64decode("ab/c")
        assert body == b"a"

    @pytest.mark.parametrize("sealed", ["é", "é".encode("utf-8"), _b64('["é","YQ=="]'.encode("utf-8"))])
    def test_non_ascii_is_malformed(self, sealed):
        with pytest.raises(DecryptError):
            unpack(sealed)

    def test_accepts_raw_bytes(self):
        assert unpack(pack(b"nonce", b"body").encode("ascii")) == (b"nonce", b"body")
