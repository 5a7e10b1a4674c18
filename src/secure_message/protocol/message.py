"""SecureMessage -- the entity carried through the encrypt/decrypt lifecycle.

Pure data plus invariants, no I/O.  Every sensitive value (plaintext,
ciphertext, key fragments) is held in a ``bytearray`` so it can be
overwritten with zeros before the reference is dropped.

Python can not promise that no copy survives elsewhere: ``bytes`` objects
handed to or returned by libsodium are immutable and are released by the
garbage collector, not zeroed.  The wipe methods zero every buffer this
class owns, which is the strongest erase a memory-managed runtime offers.
"""

from __future__ import annotations

from typing import Optional, Union

from secure_message.protocol.types import Meta

BytesLike = Union[bytes, bytearray, str]


def _buffer(value: BytesLike) -> bytearray:
    """Copy *value* into a fresh mutable buffer (``str`` is UTF-8 encoded)."""
    if isinstance(value, str):
        return bytearray(value.encode("utf-8"))
    return bytearray(value)


def wipe_buffer(buf: bytearray | None) -> None:
    """Overwrite *buf* with zeros in place."""
    if buf is not None:
        buf[:] = bytes(len(buf))


class SecureMessage:
    """A secure message, plain or encrypted.

    Read access is through properties; the ``set_*`` mutators return the
    instance so calls can be chained::

        message = (
            SecureMessage()
            .set_id(message_id)
            .set_database_key(database_key)
            .set_storage_key(storage_key)
            .set_verification_code(code)
        )
    """

    def __init__(self) -> None:
        self._id: Optional[str] = None
        self._content: Optional[bytearray] = None
        self._encrypted_content: Optional[bytearray] = None
        self._meta = Meta()
        self._encrypted_meta: Optional[bytearray] = None
        self._database_key: Optional[bytearray] = None
        self._storage_key: Optional[bytearray] = None
        self._verification_code: Optional[bytearray] = None
        self._meta_key: Optional[bytearray] = None

    def __repr__(self) -> str:
        """Identify the message without exposing content or key material."""
        return (
            f"SecureMessage(id={self._id!r}, "
            f"content_encrypted={self.is_content_encrypted()!r}, "
            f"meta_encrypted={self.is_meta_encrypted()!r})"
        )

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> Optional[str]:
        return self._id

    def set_id(self, message_id: str) -> SecureMessage:
        """Assign the message id.  An id can only be assigned once."""
        if self._id is not None and self._id != message_id:
            raise ValueError("The id of a secure message can not be changed")
        self._id = message_id
        return self

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    @property
    def content(self) -> Optional[bytes]:
        """The plaintext content, or ``None`` when it is not available."""
        return bytes(self._content) if self._content is not None else None

    def set_content(self, content: BytesLike) -> SecureMessage:
        self.wipe_content()
        self._content = _buffer(content)
        return self

    @property
    def encrypted_content(self) -> Optional[str]:
        if self._encrypted_content is None:
            return None
        return self._encrypted_content.decode("ascii")

    def set_encrypted_content(self, encrypted: BytesLike) -> SecureMessage:
        self.wipe_encrypted_content()
        self._encrypted_content = _buffer(encrypted)
        return self

    def sealed_content(self) -> Optional[bytes]:
        """The sealed content as raw bytes, without decoding it."""
        return bytes(self._encrypted_content) if self._encrypted_content is not None else None

    def is_content_encrypted(self) -> bool:
        return bool(self._encrypted_content)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def meta(self) -> Meta:
        return self._meta

    def set_meta(self, meta: Meta | dict) -> SecureMessage:
        self._meta = meta if isinstance(meta, Meta) else Meta.from_dict(meta)
        return self

    @property
    def hit_points(self) -> Optional[int]:
        return self._meta.hit_points

    def set_hit_points(self, hit_points: int) -> SecureMessage:
        self._meta.hit_points = hit_points
        return self

    @property
    def expires_at(self) -> Optional[int]:
        return self._meta.expires_at

    def set_expires_at(self, expires_at: int) -> SecureMessage:
        self._meta.expires_at = expires_at
        return self

    @property
    def encrypted_meta(self) -> Optional[str]:
        if self._encrypted_meta is None:
            return None
        return self._encrypted_meta.decode("ascii")

    def set_encrypted_meta(self, encrypted: BytesLike) -> SecureMessage:
        self.wipe_encrypted_meta()
        self._encrypted_meta = _buffer(encrypted)
        return self

    def sealed_meta(self) -> Optional[bytes]:
        return bytes(self._encrypted_meta) if self._encrypted_meta is not None else None

    def is_meta_encrypted(self) -> bool:
        return bool(self._encrypted_meta)

    # ------------------------------------------------------------------
    # Key fragments
    # ------------------------------------------------------------------

    @property
    def database_key(self) -> Optional[bytes]:
        return bytes(self._database_key) if self._database_key is not None else None

    def set_database_key(self, key: BytesLike) -> SecureMessage:
        wipe_buffer(self._database_key)
        self._database_key = _buffer(key)
        return self

    @property
    def storage_key(self) -> Optional[bytes]:
        return bytes(self._storage_key) if self._storage_key is not None else None

    def set_storage_key(self, key: BytesLike) -> SecureMessage:
        wipe_buffer(self._storage_key)
        self._storage_key = _buffer(key)
        return self

    @property
    def verification_code(self) -> Optional[str]:
        if self._verification_code is None:
            return None
        return self._verification_code.decode("utf-8", errors="replace")

    def set_verification_code(self, code: BytesLike) -> SecureMessage:
        wipe_buffer(self._verification_code)
        self._verification_code = _buffer(code)
        return self

    def set_meta_key(self, key: BytesLike) -> SecureMessage:
        """Set the application-wide meta key fragment."""
        wipe_buffer(self._meta_key)
        self._meta_key = _buffer(key)
        return self

    def encryption_key(self) -> bytes:
        """Return ``database_key || storage_key || verification_code``.

        Missing fragments are skipped, so the result is shorter than 32
        bytes whenever a fragment is absent.  Callers must check the length.
        """
        parts = (self._database_key, self._storage_key, self._verification_code)
        return b"".join(bytes(p) for p in parts if p is not None)

    def metadata_key(self) -> Optional[bytes]:
        """Return ``database_key || storage_key || meta_key``, or ``None``."""
        parts = (self._database_key, self._storage_key, self._meta_key)
        if any(p is None for p in parts):
            return None
        return b"".join(bytes(p) for p in parts)

    # ------------------------------------------------------------------
    # Secure erase
    # ------------------------------------------------------------------

    def wipe_keys(self, wipe_verification_code: bool = True) -> None:
        """Zero and drop the key fragments.

        With ``wipe_verification_code=False`` the verification code is kept,
        so it can still be handed to the end user after encryption.
        """
        for name in ("_database_key", "_storage_key", "_meta_key"):
            wipe_buffer(getattr(self, name))
            setattr(self, name, None)

        if wipe_verification_code:
            wipe_buffer(self._verification_code)
            self._verification_code = None

    def wipe_content(self) -> None:
        wipe_buffer(self._content)
        self._content = None

    def wipe_encrypted_content(self) -> None:
        wipe_buffer(self._encrypted_content)
        self._encrypted_content = None

    def wipe_encrypted_meta(self) -> None:
        wipe_buffer(self._encrypted_meta)
        self._encrypted_meta = None
