"""Fragment store: keeps the storage key apart from the record store.

The storage key must live on a different medium than the database so that
neither holds enough material to decrypt a message on its own.
"""

from __future__ import annotations

import abc
import logging
import os
import platform
import re
import stat
from pathlib import Path

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9A-Za-z]{1,64}$")


class FragmentStore(abc.ABC):
    """Abstract storage for one key fragment per message id."""

    @abc.abstractmethod
    def get(self, message_id: str) -> str:
        """Return the stored fragment.  Raises ``KeyError`` if absent."""

    @abc.abstractmethod
    def put(self, message_id: str, value: str) -> None:
        """Store (or replace) the fragment for *message_id*."""

    @abc.abstractmethod
    def delete(self, message_id: str) -> None:
        """Remove the fragment; a missing fragment is not an error."""

    @abc.abstractmethod
    def exists(self, message_id: str) -> bool:
        """Return whether a fragment is stored for *message_id*."""


class FileFragmentStore(FragmentStore):
    """One file per message id, with 600 permissions.

    Usage::

        store = FileFragmentStore(settings.storage_dir)
        store.put(message.id, sealed_storage_key)
    """

    def __init__(self, directory: Path | str) -> None:
        self._dir = Path(directory)

    def _path(self, message_id: str) -> Path:
        if not _ID_PATTERN.match(message_id):
            raise ValueError(f"Invalid message id: {message_id!r}")
        return self._dir / message_id

    def get(self, message_id: str) -> str:
        path = self._path(message_id)
        try:
            return path.read_text().strip()
        except FileNotFoundError:
            raise KeyError(message_id) from None

    def put(self, message_id: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(message_id)
        path.write_text(value)
        if platform.system() != "Windows":
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        logger.debug("Stored key fragment for %s", message_id)

    def delete(self, message_id: str) -> None:
        self._path(message_id).unlink(missing_ok=True)

    def exists(self, message_id: str) -> bool:
        return self._path(message_id).is_file()
