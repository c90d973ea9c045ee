"""
Request Router — one password generation request, end to end.

Master secret and site options are awaited together; the site identity is
computed from the page URL and fed with both into the password derivation.
Failures propagate to the caller unchanged, there is no fallback password.
"""
import asyncio
import logging

from datamodel import BaseModel

from .conf import LOGGER_NAME
from .domain import extract_identity
from .options import OptionsStore
from .password import derive_password
from .session import SessionCoordinator

logger = logging.getLogger(LOGGER_NAME)


class GeneratedPassword(BaseModel):
    """Password derived for one site identity."""
    identity: str
    password: str


class RequestRouter:
    """Wires the session, the options store and the derivation together."""

    def __init__(self, session: SessionCoordinator, options: OptionsStore):
        self._session = session
        self._options = options

    @property
    def session(self) -> SessionCoordinator:
        return self._session

    @property
    def options(self) -> OptionsStore:
        return self._options

    async def generate_password(self, url: str) -> GeneratedPassword:
        """Derive the password of the site serving ``url``.

        Raises:
            InvalidUrlError: If ``url`` has no usable host.
            InvalidConfigError: If the stored options are not usable.
            PromptDismissedError: If the unlock prompt was dismissed.
        """
        # an unusable URL never opens the unlock prompt
        identity = extract_identity(url)
        logger.debug("Generating password for %s", identity)
        secret, options = await asyncio.gather(
            self._session.get_secret(),
            self._options.get_options(),
            return_exceptions=True,
        )
        if isinstance(secret, BaseException):
            raise secret
        if isinstance(options, BaseException):
            raise options
        password = derive_password(
            secret, options.site_pepper, identity, options.length,
        )
        return GeneratedPassword(identity=identity, password=password)
