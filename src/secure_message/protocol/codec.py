"""Wire encoding of sealed values.

A sealed value is the nonce plus the secretbox ciphertext (which includes
the Poly1305 tag), packed as::

    base64( json( [ base64(nonce), base64(ciphertext) ] ) )

Standard base64 alphabet with padding, compact JSON.  Any malformed layer
decodes to :class:`DecryptError`, the same signal as a failed
authentication.
"""

from __future__ import annotations

import base64
import binascii
import json

from secure_message.protocol.errors import DecryptError


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _unb64(s: str | bytes) -> bytes:
    return base64.b64decode(s, validate=True)


def pack(nonce: bytes, ciphertext: bytes) -> str:
    """Merge *nonce* and *ciphertext* into a single transport-safe string."""
    inner = json.dumps([_b64(nonce), _b64(ciphertext)], separators=(",", ":"))
    return _b64(inner.encode("ascii"))


def unpack(sealed: str | bytes | None) -> tuple[bytes, bytes]:
    """Split a value produced by :func:`pack` into ``(nonce, ciphertext)``.

    *sealed* may be the packed text or its raw bytes; bytes outside the
    base64 alphabet count as malformed.

    Raises:
        DecryptError: If *sealed* is empty or malformed at any layer.
    """
    if not sealed:
        raise DecryptError("No sealed value to decode.")

    try:
        parts = json.loads(_unb64(sealed))
    except (binascii.Error, ValueError) as exc:
        raise DecryptError("Malformed sealed value.") from exc

    if (
        not isinstance(parts, list)
        or len(parts) != 2
        or not all(isinstance(p, str) for p in parts)
    ):
        raise DecryptError("Malformed sealed value.")

    try:
        return _unb64(parts[0]), _unb64(parts[1])
    except (binascii.Error, ValueError) as exc:
        raise DecryptError("Malformed sealed value.") from exc
