"""Shared test fixtures for secure message tests."""

from __future__ import annotations

import nacl.utils
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from secure_message.db.session import async_session_factory, create_tables
from secure_message.events import EventDispatcher
from secure_message.protocol.crypto import Crypto
from secure_message.protocol.factory import Factory
from secure_message.service import SecureMessageService
from secure_message.storage.at_rest import AtRestCipher
from secure_message.storage.fragments import FileFragmentStore

META_KEY = "metaKey___"

# Fixed "now" for tests; far before any expiry used below
NOW = 1_700_000_000


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def meta_key() -> str:
    return META_KEY


@pytest.fixture()
def crypto(clock: FakeClock) -> Crypto:
    return Crypto(clock=clock)


@pytest.fixture()
def factory(clock: FakeClock, crypto: Crypto) -> Factory:
    return Factory(meta_key=META_KEY, crypto=crypto, clock=clock)


@pytest.fixture
async def engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture()
def fragments(tmp_path) -> FileFragmentStore:
    return FileFragmentStore(tmp_path / "keys")


@pytest.fixture()
def cipher() -> AtRestCipher:
    return AtRestCipher(nacl.utils.random(32))


@pytest.fixture()
def dispatcher() -> EventDispatcher:
    return EventDispatcher()


@pytest.fixture()
def service(engine, factory, fragments, cipher, dispatcher, clock) -> SecureMessageService:
    return SecureMessageService(
        factory=factory,
        sessions=async_session_factory(engine),
        fragments=fragments,
        cipher=cipher,
        dispatcher=dispatcher,
        clock=clock,
    )
