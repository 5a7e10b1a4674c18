"""Events dispatched when a stored secure message fails to decrypt.

Listeners receive frozen event objects that carry only the message id,
never content or key material.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecureMessageEvent:
    message_id: str


@dataclass(frozen=True)
class DecryptionFailed(SecureMessageEvent):
    """Wrong verification code, missing key file or corrupted data."""


@dataclass(frozen=True)
class HitPointLimitReached(SecureMessageEvent):
    """The last hit point was spent; the message is gone."""


@dataclass(frozen=True)
class SecureMessageExpired(SecureMessageEvent):
    """A decrypt was attempted after the expiry timestamp."""


Listener = Callable[[SecureMessageEvent], None]


class EventDispatcher:
    """Synchronous in-process event dispatch.

    Listeners registered for a base class also receive its subclasses::

        dispatcher.listen(SecureMessageEvent, audit_log.record)
        dispatcher.listen(HitPointLimitReached, alert_owner)
    """

    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def listen(self, event_type: type[SecureMessageEvent], listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def dispatch(self, event: SecureMessageEvent) -> None:
        logger.info("Dispatching %s for %s", type(event).__name__, event.message_id)
        for event_type in type(event).__mro__:
            for listener in self._listeners.get(event_type, ()):
                listener(event)
