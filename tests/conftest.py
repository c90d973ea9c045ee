import asyncio

import pytest

from navigator_sitepass.options import MemoryOptionsStore, SiteOptions
from navigator_sitepass.router import RequestRouter
from navigator_sitepass.session import SessionCoordinator
from navigator_sitepass.channel import MessageController


class FakePrompt:
    """UnlockPrompt recording every call; handles are 1, 2, 3..."""

    def __init__(self):
        self.opened = []
        self.focused = []
        self.closed = []
        self._counter = 0

    async def open(self):
        self._counter += 1
        self.opened.append(self._counter)
        return self._counter

    async def focus(self, handle):
        self.focused.append(handle)

    async def close(self, handle):
        self.closed.append(handle)


async def settle(rounds: int = 5):
    """Let scheduled tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def prompt():
    return FakePrompt()


@pytest.fixture
def session(prompt):
    """A fresh coordinator per test, no secret shared between tests."""
    return SessionCoordinator(prompt)


@pytest.fixture
def options():
    return MemoryOptionsStore(SiteOptions(site_pepper="pepper", length=10))


@pytest.fixture
def router(session, options):
    return RequestRouter(session, options)


@pytest.fixture
def controller(router):
    return MessageController(router)
