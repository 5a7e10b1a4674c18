"""Key fragment storage and at-rest encryption."""

from secure_message.storage.at_rest import AtRestCipher
from secure_message.storage.fragments import FileFragmentStore, FragmentStore

__all__ = ["AtRestCipher", "FileFragmentStore", "FragmentStore"]
