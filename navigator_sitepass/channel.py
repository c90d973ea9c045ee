"""
Message Channel — request/response messages exchanged with the UI.

Page messages::

    {"type": "generate-password", "url": "..."}
        -> {"type": "password", "identity": "...", "password": "..."}
        -> {"type": "password-not-available", "error": "..."}
    {"type": "clear-master-password"}

Prompt messages::

    {"type": "set-master-password", "password": "..."}
    {"type": "cancel"}

Options messages::

    {"type": "get-options"} -> {"type": "options", "secret": "...", "len": 10}
        -> {"type": "options-not-available", "error": "..."}
    {"type": "update-options", "secret": "...", "len": 10}
        -> {"type": "options", ...} | {"type": "options-not-saved", "error": "..."}

Frames use the browser native-messaging layout: a 4-byte native-order
message length followed by the UTF-8 JSON body.

Security Note:
    Never log message bodies, they carry secrets and passwords.
"""
import struct
import logging
from typing import Any, Optional

import orjson

from .conf import LOGGER_NAME
from .exceptions import SitepassError
from .router import RequestRouter

logger = logging.getLogger(LOGGER_NAME)

_LENGTH_PREFIX = struct.Struct("=I")


def encode_frame(message: dict[str, Any]) -> bytes:
    """Encode a message as a length-prefixed JSON frame."""
    body = orjson.dumps(message)
    return _LENGTH_PREFIX.pack(len(body)) + body


def decode_frame(frame: bytes) -> dict[str, Any]:
    """Decode one length-prefixed JSON frame.

    Raises:
        ValueError: If the frame is truncated or its body is not a JSON object.
    """
    if len(frame) < _LENGTH_PREFIX.size:
        raise ValueError(
            f"frame too short: {len(frame)} bytes "
            f"(minimum {_LENGTH_PREFIX.size})"
        )
    (length,) = _LENGTH_PREFIX.unpack_from(frame)
    body = frame[_LENGTH_PREFIX.size:]
    if len(body) != length:
        raise ValueError(
            f"frame body is {len(body)} bytes, header announced {length}"
        )
    message = orjson.loads(body)
    if not isinstance(message, dict):
        raise ValueError("frame body must be a JSON object")
    return message


class MessageController:
    """Dispatches channel messages to the request router."""

    def __init__(self, router: RequestRouter):
        self._router = router
        self._handlers = {
            "generate-password": self.generate_password,
            "clear-master-password": self.clear_master_password,
            "set-master-password": self.set_master_password,
            "cancel": self.cancel,
            "get-options": self.get_options,
            "update-options": self.update_options,
        }

    async def handle(self, message: dict[str, Any]) -> Optional[dict[str, Any]]:
        """Handle one incoming message, returning the reply if there is one."""
        message = dict(message)
        msg_type = message.pop("type", None)
        handler = self._handlers.get(msg_type)
        if handler is None:
            logger.warning("Received unexpected message: %s", msg_type)
            return None
        logger.debug("Received message: %s", msg_type)
        return await handler(message)

    async def handle_frame(self, frame: bytes) -> Optional[bytes]:
        """Frame-level variant of :meth:`handle`."""
        reply = await self.handle(decode_frame(frame))
        return encode_frame(reply) if reply is not None else None

    async def generate_password(self, message: dict[str, Any]) -> dict[str, Any]:
        url = message.get("url")
        if not isinstance(url, str):
            logger.error("Rejecting generate-password request: no url")
            return {
                "type": "password-not-available",
                "error": "generate-password requires a url",
            }
        try:
            result = await self._router.generate_password(url)
        except Exception as err:
            logger.error("Rejecting generate-password request: %s", err)
            return {"type": "password-not-available", "error": str(err)}
        logger.debug("Responding to generate-password request (%s)", result.identity)
        return {
            "type": "password",
            "identity": result.identity,
            "password": result.password,
        }

    async def clear_master_password(self, message: dict[str, Any]) -> None:
        await self._router.session.lock()

    async def set_master_password(self, message: dict[str, Any]) -> None:
        await self._router.session.provide_secret(message.get("password") or "")

    async def cancel(self, message: dict[str, Any]) -> None:
        await self._router.session.cancel()

    async def get_options(self, message: dict[str, Any]) -> dict[str, Any]:
        try:
            options = await self._router.options.get_options()
        except SitepassError as err:
            logger.error("Rejecting get-options request: %s", err)
            return {"type": "options-not-available", "error": str(err)}
        return {"type": "options", **options.to_storage()}

    async def update_options(self, message: dict[str, Any]) -> dict[str, Any]:
        try:
            options = await self._router.options.set_options(message)
        except SitepassError as err:
            logger.error("Rejecting update-options request: %s", err)
            return {"type": "options-not-saved", "error": str(err)}
        return {"type": "options", **options.to_storage()}
