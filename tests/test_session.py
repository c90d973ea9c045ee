"""
Tests for the master secret session coordinator.

Tests cover:
- Fan-out of one unlock prompt to every queued request
- Rejection of every queued request on dismissal
- Lock and re-prompt behaviour
- Prompts settled while still opening
"""
import asyncio

import pytest

from conftest import FakePrompt, settle
from navigator_sitepass.exceptions import PromptDismissedError
from navigator_sitepass.session import SessionCoordinator, SessionState, UnlockPrompt

pytestmark = pytest.mark.asyncio


class SlowPrompt(FakePrompt):
    """Prompt whose open() waits until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0
        self.shown_alongside = []

    async def open(self):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self.release.wait()
            # prompts still showing when this one appears
            self.shown_alongside.append(len(self.opened) - len(self.closed))
            return await super().open()
        finally:
            self.in_flight -= 1


class BrokenPrompt(FakePrompt):
    async def open(self):
        raise RuntimeError("no window available")


async def start_requests(session, count=3):
    tasks = [asyncio.ensure_future(session.get_secret()) for _ in range(count)]
    await settle()
    return tasks


class TestInitialState:

    async def test_locked(self, session):
        assert session.state is SessionState.LOCKED
        assert session.is_unlocked is False
        assert session.pending == 0

    async def test_fake_prompt_is_unlock_prompt(self, prompt):
        assert isinstance(prompt, UnlockPrompt)

    async def test_repr(self, session):
        assert "locked" in repr(session)


class TestFanOut:
    """Tests for requests queued behind one prompt."""

    async def test_single_prompt_for_concurrent_requests(self, session, prompt):
        tasks = await start_requests(session)
        assert prompt.opened == [1]
        assert session.state is SessionState.AWAITING_INPUT
        assert session.pending == 3
        # later requests only draw attention to the open prompt
        assert prompt.focused == [1, 1]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        assert session.pending == 0

    async def test_secret_resolves_every_request(self, session, prompt):
        tasks = await start_requests(session)
        await session.provide_secret("master")
        assert await asyncio.gather(*tasks) == ["master"] * 3
        assert session.state is SessionState.UNLOCKED
        assert session.pending == 0
        assert prompt.closed == [1]

    async def test_unlocked_session_does_not_prompt(self, session, prompt):
        tasks = await start_requests(session, 1)
        await session.provide_secret("master")
        await asyncio.gather(*tasks)
        assert await session.get_secret() == "master"
        assert prompt.opened == [1]

    async def test_cancel_rejects_every_request(self, session, prompt):
        tasks = await start_requests(session)
        await session.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, PromptDismissedError) for r in results)
        assert session.state is SessionState.LOCKED
        assert prompt.closed == [1]

    async def test_prompt_closed_by_user(self, session, prompt):
        tasks = await start_requests(session)
        session.interaction_closed(1)
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, PromptDismissedError) for r in results)
        assert session.state is SessionState.LOCKED
        # the user already closed it
        assert prompt.closed == []

    async def test_unknown_handle_ignored(self, session, prompt):
        tasks = await start_requests(session, 2)
        session.interaction_closed(99)
        assert session.state is SessionState.AWAITING_INPUT
        assert session.pending == 2
        await session.provide_secret("master")
        assert await asyncio.gather(*tasks) == ["master", "master"]

    async def test_close_after_secret_ignored(self, session, prompt):
        tasks = await start_requests(session, 1)
        await session.provide_secret("master")
        session.interaction_closed(1)
        assert await tasks[0] == "master"
        assert session.state is SessionState.UNLOCKED

    async def test_reprompt_after_dismissal(self, session, prompt):
        tasks = await start_requests(session, 1)
        await session.cancel()
        with pytest.raises(PromptDismissedError):
            await tasks[0]
        tasks = await start_requests(session, 1)
        assert prompt.opened == [1, 2]
        await session.provide_secret("master")
        assert await tasks[0] == "master"

    async def test_cancelled_caller_leaves_queue(self, session, prompt):
        tasks = await start_requests(session)
        tasks[0].cancel()
        await settle()
        assert session.pending == 2
        assert session.state is SessionState.AWAITING_INPUT
        await session.provide_secret("master")
        assert await asyncio.gather(*tasks[1:]) == ["master", "master"]

    async def test_empty_secret_ignored(self, session, prompt):
        tasks = await start_requests(session, 1)
        await session.provide_secret("")
        assert session.state is SessionState.AWAITING_INPUT
        assert not tasks[0].done()
        await session.provide_secret("master")
        assert await tasks[0] == "master"


class TestLock:
    """Tests for locking the session."""

    async def test_lock_forgets_secret(self, session, prompt):
        await session.provide_secret("master")
        assert session.is_unlocked
        await session.lock()
        assert session.state is SessionState.LOCKED
        tasks = await start_requests(session, 1)
        assert prompt.opened == [1]
        await session.provide_secret("other")
        assert await tasks[0] == "other"

    async def test_lock_while_awaiting_rejects(self, session, prompt):
        tasks = await start_requests(session, 2)
        await session.lock()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, PromptDismissedError) for r in results)
        assert prompt.closed == [1]
        assert session.state is SessionState.LOCKED

    async def test_lock_is_idempotent(self, session, prompt):
        await session.lock()
        await session.lock()
        assert session.state is SessionState.LOCKED
        assert prompt.closed == []

    async def test_secret_without_prompt(self, session, prompt):
        """A secret submitted while locked unlocks the session."""
        await session.provide_secret("master")
        assert await session.get_secret() == "master"
        assert prompt.opened == []

    async def test_cancel_without_prompt(self, session, prompt):
        await session.provide_secret("master")
        await session.cancel()
        assert session.state is SessionState.UNLOCKED


class TestPromptOpening:
    """Tests for prompts that are slow or fail to open."""

    async def test_settled_while_opening(self):
        prompt = SlowPrompt()
        session = SessionCoordinator(prompt)
        tasks = await start_requests(session, 2)
        assert session.prompt_handle is None
        # no handle yet, nothing to focus
        assert prompt.focused == []
        await session.cancel()
        prompt.release.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, PromptDismissedError) for r in results)
        # the late prompt is closed as soon as it shows up
        assert prompt.closed == [1]
        assert session.state is SessionState.LOCKED

    async def test_secret_while_opening(self):
        prompt = SlowPrompt()
        session = SessionCoordinator(prompt)
        tasks = await start_requests(session, 2)
        await session.provide_secret("master")
        prompt.release.set()
        assert await asyncio.gather(*tasks) == ["master", "master"]
        assert prompt.closed == [1]
        assert session.prompt_handle is None

    async def test_open_failure_rejects_queue(self):
        session = SessionCoordinator(BrokenPrompt())
        with pytest.raises(RuntimeError):
            await session.get_secret()
        assert session.state is SessionState.LOCKED
        assert session.pending == 0

    @pytest.mark.parametrize("settle_episode", ["lock", "cancel"])
    async def test_next_episode_waits_for_stale_prompt(self, settle_episode):
        """A new episode opens its prompt only after the stale one is closed."""
        prompt = SlowPrompt()
        session = SessionCoordinator(prompt)
        first = await start_requests(session, 1)
        await getattr(session, settle_episode)()
        second = await start_requests(session, 1)
        assert session.state is SessionState.AWAITING_INPUT
        assert prompt.in_flight == 1
        prompt.release.set()
        await settle(10)
        assert prompt.max_in_flight == 1
        assert prompt.opened == [1, 2]
        assert prompt.closed == [1]
        assert prompt.shown_alongside == [0, 0]
        assert session.prompt_handle == 2
        with pytest.raises(PromptDismissedError):
            await first[0]
        await session.provide_secret("master")
        assert await second[0] == "master"
        assert prompt.closed == [1, 2]

    async def test_cancelled_while_waiting_for_stale_prompt(self):
        prompt = SlowPrompt()
        session = SessionCoordinator(prompt)
        first = await start_requests(session, 1)
        await session.cancel()
        second = await start_requests(session, 1)
        second[0].cancel()
        await settle()
        assert session.state is SessionState.LOCKED
        assert session.pending == 0
        prompt.release.set()
        await asyncio.gather(*first, *second, return_exceptions=True)
        assert prompt.opened == [1]
        assert prompt.closed == [1]
