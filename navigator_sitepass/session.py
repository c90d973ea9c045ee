"""
Session Coordinator — owner of the master secret for one unlocked session.

The master secret is asked for at most once per unlock episode: the first
caller that finds the session locked opens the unlock prompt, every caller
arriving while the prompt is open is queued behind it. Submitting a secret
resolves the whole queue; dismissing the prompt rejects the whole queue with
:class:`PromptDismissedError`.

States::

    LOCKED --get_secret--> AWAITING_INPUT --provide_secret--> UNLOCKED
                                 |                               |
                                 +--cancel / prompt closed--> LOCKED <--lock--+

Security Note:
    The master secret lives in process memory only while UNLOCKED.
    Never log the secret itself, only state transitions.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from .conf import LOGGER_NAME
from .exceptions import PromptDismissedError

logger = logging.getLogger(LOGGER_NAME)


class SessionState(str, Enum):
    LOCKED = "locked"
    AWAITING_INPUT = "awaiting-input"
    UNLOCKED = "unlocked"


@runtime_checkable
class UnlockPrompt(Protocol):
    """Interaction asking the user for the master secret.

    The provider reports a prompt closed by the user through
    :meth:`SessionCoordinator.interaction_closed`.
    """

    async def open(self) -> Any:
        """Show the prompt, returning a handle identifying it."""

    async def focus(self, handle: Any) -> None:
        """Draw the user's attention to an already open prompt."""

    async def close(self, handle: Any) -> None:
        """Close the prompt identified by ``handle``."""


class SessionCoordinator:
    """Master secret holder and unlock request queue.

    One instance per session; nothing is shared between instances.
    """

    def __init__(self, prompt: UnlockPrompt):
        self._prompt = prompt
        self._secret: Optional[str] = None
        self._state = SessionState.LOCKED
        self._waiters: list[asyncio.Future] = []
        self._handle: Any = None
        # completes once an opening prompt is shown or closed as stale
        self._opening: Optional[asyncio.Future] = None
        # bumped whenever an episode starts or ends, to spot stale prompts
        self._episode = 0

    def __repr__(self) -> str:
        return (
            f'<SessionCoordinator [state:{self._state.value}, '
            f'pending:{len(self._waiters)}]>'
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_unlocked(self) -> bool:
        return self._state is SessionState.UNLOCKED

    @property
    def pending(self) -> int:
        """Number of callers waiting for the current episode."""
        return len(self._waiters)

    @property
    def prompt_handle(self) -> Any:
        return self._handle

    # ------------------------------------------------------------------
    # Episode helpers
    # ------------------------------------------------------------------

    def _settle(self, state: SessionState) -> tuple[list[asyncio.Future], Any]:
        """End the current episode, returning its waiters and prompt handle."""
        waiters, self._waiters = self._waiters, []
        handle, self._handle = self._handle, None
        self._episode += 1
        if state is not self._state:
            logger.debug(
                "Session state %s -> %s", self._state.value, state.value
            )
        self._state = state
        return waiters, handle

    @staticmethod
    def _reject(waiters: list[asyncio.Future], reason: str) -> None:
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(PromptDismissedError(reason))

    async def _close_prompt(self, handle: Any) -> None:
        if handle is None:
            return
        logger.debug("Closing unlock prompt (handle=%s)", handle)
        await self._prompt.close(handle)

    async def _open_prompt(self, episode: int) -> None:
        previous = self._opening
        opening = asyncio.get_running_loop().create_future()
        self._opening = opening
        try:
            if previous is not None:
                # the prompt of a settled episode is still opening
                logger.debug("Waiting for the previous unlock prompt to settle")
                await asyncio.shield(previous)
            await self._show_prompt(episode)
        except asyncio.CancelledError:
            if self._episode == episode:
                waiters, _ = self._settle(SessionState.LOCKED)
                self._reject(waiters, "Password prompt cancelled")
            raise
        finally:
            if not opening.done():
                opening.set_result(None)
            if self._opening is opening:
                pending_previous = previous is not None and not previous.done()
                self._opening = previous if pending_previous else None

    async def _show_prompt(self, episode: int) -> None:
        if self._episode != episode:
            return
        logger.debug("Opening unlock prompt")
        try:
            handle = await self._prompt.open()
        except Exception as err:
            logger.error("Unable to open unlock prompt: %s", err)
            if self._episode == episode:
                waiters, _ = self._settle(SessionState.LOCKED)
                for waiter in waiters:
                    if not waiter.done():
                        waiter.set_exception(err)
            return
        if self._episode != episode:
            # settled while the prompt was opening
            logger.debug("Unlock episode already settled, closing prompt")
            await self._close_prompt(handle)
            return
        logger.debug("Unlock prompt opened (handle=%s)", handle)
        self._handle = handle

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_secret(self) -> str:
        """Return the master secret, prompting the user when locked.

        Raises:
            PromptDismissedError: If the prompt is closed without a secret.
        """
        if self._state is SessionState.UNLOCKED:
            logger.debug("Master secret available")
            return self._secret
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            if self._state is SessionState.LOCKED:
                logger.debug("Master secret not available")
                self._state = SessionState.AWAITING_INPUT
                self._episode += 1
                await self._open_prompt(self._episode)
            elif self._handle is not None:
                logger.debug(
                    "Unlock prompt already open, %d request(s) pending",
                    len(self._waiters),
                )
                await self._prompt.focus(self._handle)
            return await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    async def provide_secret(self, value: str) -> None:
        """Store the master secret entered by the user and resolve the queue."""
        if not value:
            logger.debug("Empty input, not setting master secret")
            return
        self._secret = value
        waiters, handle = self._settle(SessionState.UNLOCKED)
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(value)
        logger.debug("Master secret set, resolved %d request(s)", len(waiters))
        await self._close_prompt(handle)

    async def cancel(self) -> None:
        """Dismiss the open prompt, rejecting every queued request."""
        if self._state is not SessionState.AWAITING_INPUT:
            logger.debug("No unlock prompt pending")
            return
        waiters, handle = self._settle(SessionState.LOCKED)
        logger.debug("Unlock prompt cancelled, rejecting %d request(s)", len(waiters))
        self._reject(waiters, "Password prompt closed")
        await self._close_prompt(handle)

    def interaction_closed(self, handle: Any) -> None:
        """Prompt ``handle`` was closed by the user."""
        if self._handle is None or handle != self._handle:
            return
        logger.debug("Unlock prompt closed (handle=%s)", handle)
        waiters, _ = self._settle(SessionState.LOCKED)
        self._reject(waiters, "Password prompt closed")

    async def lock(self) -> None:
        """Forget the master secret and close any open prompt."""
        self._secret = None
        waiters, handle = self._settle(SessionState.LOCKED)
        logger.debug("Master secret cleared")
        self._reject(waiters, "Password prompt closed")
        await self._close_prompt(handle)
