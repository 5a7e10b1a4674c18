"""Tests for the housekeeping sweep."""

from __future__ import annotations

import asyncio

import pytest

from secure_message.housekeeping import housekeeping_loop, run_housekeeping
from secure_message.protocol.errors import DecryptError

WRONG_CODE = "zzzzzzzzzz"


async def test_keeps_live_messages(service):
    message = await service.encrypt("x")
    assert await run_housekeeping(service) == []
    assert await service.list_ids() == [message.id]


async def test_destroys_expired(service, clock, fragments):
    expired = await service.encrypt("x", expires_at=int(clock()) + 5)
    live = await service.encrypt("y")

    destroyed = await run_housekeeping(service, now=clock() + 6)

    assert destroyed == [expired.id]
    assert await service.list_ids() == [live.id]
    assert not fragments.exists(expired.id)


async def test_expiry_boundary_kept(service, clock):
    message = await service.encrypt("x", expires_at=int(clock()) + 5)
    assert await run_housekeeping(service, now=int(clock()) + 5) == []
    assert await service.list_ids() == [message.id]


async def test_destroys_message_without_hit_points(service):
    message = await service.encrypt("x", hit_points=0)
    assert await run_housekeeping(service) == [message.id]
    assert await service.list_ids() == []


async def test_destroys_message_without_key_file(service, fragments):
    message = await service.encrypt("x")
    fragments.delete(message.id)
    assert await run_housekeeping(service) == [message.id]
    assert await service.list_ids() == []


async def test_keeps_message_with_unreadable_meta(service, factory):
    message = await service.encrypt("x")
    factory.set_meta_key("otherKey__")
    assert await run_housekeeping(service) == []
    assert await service.list_ids() == [message.id]


async def test_on_destroy_callback(service, fragments):
    message = await service.encrypt("x")
    fragments.delete(message.id)
    seen = []
    await run_housekeeping(service, on_destroy=seen.append)
    assert seen == [message.id]


async def test_partially_spent_message_kept(service):
    message = await service.encrypt("x")
    with pytest.raises(DecryptError):
        await service.decrypt(message.id, WRONG_CODE)
    assert await run_housekeeping(service) == []


async def test_loop_runs_until_cancelled(service, fragments):
    message = await service.encrypt("x")
    fragments.delete(message.id)

    task = asyncio.create_task(housekeeping_loop(service, interval=0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await service.list_ids() == []
