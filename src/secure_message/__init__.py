"""secure-message -- split-key, self-destructing encrypted messages.

Top-level convenience re-exports::

    from secure_message import Factory, SecureMessage
    from secure_message.service import SecureMessageService  # storage-backed
"""

__version__ = "0.1.0"

from secure_message.protocol import (
    Crypto,
    DecryptError,
    ExpiredError,
    Factory,
    HitPointLimitReachedError,
    InvalidKeyLengthError,
    SecureMessage,
    SecureMessageError,
)

__all__ = [
    "__version__",
    "Crypto",
    "DecryptError",
    "ExpiredError",
    "Factory",
    "HitPointLimitReachedError",
    "InvalidKeyLengthError",
    "SecureMessage",
    "SecureMessageError",
]
