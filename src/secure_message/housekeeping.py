"""Housekeeping sweep: destroy messages that can never be decrypted again.

A message is destroyed when it has no hit points left, is past its expiry
timestamp, or lost its key file.  Only metadata is decrypted.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from secure_message.protocol.errors import DecryptError, MessageNotFoundError
from secure_message.service import SecureMessageService

logger = logging.getLogger(__name__)


async def run_housekeeping(
    service: SecureMessageService,
    now: float | None = None,
    on_destroy: Callable[[str], None] | None = None,
) -> list[str]:
    """Sweep every stored message once.  Returns the destroyed ids.

    *on_destroy* is called with each destroyed id (the CLI uses it for
    verbose output).  Messages whose metadata can't be decrypted with the
    current meta key are logged and kept.
    """
    if now is None:
        now = time.time()

    destroyed: list[str] = []
    for message_id in await service.list_ids():
        if not service.has_fragment(message_id):
            logger.warning("Secure message %s has no key file", message_id)
        else:
            try:
                meta = await service.get_meta(message_id)
            except MessageNotFoundError:
                continue  # destroyed by a concurrent decrypt
            except DecryptError:
                logger.warning("Could not decrypt metadata of secure message %s, keeping it", message_id)
                continue
            if meta.hit_points > 0 and meta.expires_at >= now:
                continue

        await service.destroy(message_id)
        destroyed.append(message_id)
        if on_destroy is not None:
            on_destroy(message_id)

    logger.info("Housekeeping destroyed %d secure message(s)", len(destroyed))
    return destroyed


async def housekeeping_loop(service: SecureMessageService, interval: float) -> None:
    """Run :func:`run_housekeeping` every *interval* seconds until cancelled."""
    while True:
        await run_housekeeping(service)
        await asyncio.sleep(interval)
