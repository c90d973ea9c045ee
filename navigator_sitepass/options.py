"""
Site Options — persisted settings read by every derivation.

Persisted layout (aliases kept for compatibility with stored options)::

    {"secret": "<site pepper>", "len": 10}

Changing the site pepper or the length changes every derived password.
"""
import os
import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

import orjson
from pydantic import BaseModel, Field, ValidationError, field_validator

from .conf import LOGGER_NAME, DEFAULT_SECRET, DEFAULT_LENGTH, OPTIONS_FILE
from .exceptions import InvalidConfigError
from .password import validate_length

logger = logging.getLogger(LOGGER_NAME)


class SiteOptions(BaseModel):
    """Validated site options."""

    site_pepper: str = Field(default=DEFAULT_SECRET, alias="secret")
    length: int = Field(default=DEFAULT_LENGTH, alias="len")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("length")
    @classmethod
    def check_length(cls, v: int) -> int:
        """Reject lengths no password can be derived for."""
        return validate_length(v)

    def to_storage(self) -> dict[str, Any]:
        """Return the persisted layout of these options."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_env(cls) -> "SiteOptions":
        """Create default options, honouring environment overrides.

        The variables are read on every call:

            SITEPASS_DEFAULT_SECRET = <site pepper used when no options are stored>
            SITEPASS_DEFAULT_LENGTH = <password length used when no options are stored>

        Raises:
            InvalidConfigError: If the overrides are not valid options.
        """
        return parse_options({
            "secret": os.environ.get("SITEPASS_DEFAULT_SECRET", DEFAULT_SECRET),
            "len": os.environ.get("SITEPASS_DEFAULT_LENGTH", DEFAULT_LENGTH),
        })


def parse_options(
    data: Union[SiteOptions, Mapping[str, Any]],
    defaults: Optional[SiteOptions] = None,
) -> SiteOptions:
    """Validate raw options, filling missing keys from ``defaults``.

    Raises:
        InvalidConfigError: If the options do not validate.
    """
    if isinstance(data, SiteOptions):
        return data
    merged = defaults.to_storage() if defaults is not None else {}
    incoming = dict(data)
    for name, field in SiteOptions.model_fields.items():
        if name in incoming:
            incoming[field.alias] = incoming.pop(name)
    merged.update(incoming)
    try:
        return SiteOptions.model_validate(merged)
    except ValidationError as err:
        raise InvalidConfigError(f"Invalid site options: {err}") from err


class OptionsStore(ABC):
    """Provider of the current site options."""

    @abstractmethod
    async def get_options(self) -> SiteOptions:
        """Return a snapshot of the current options."""

    @abstractmethod
    async def set_options(
        self, options: Union[SiteOptions, Mapping[str, Any]]
    ) -> SiteOptions:
        """Validate and persist new options, returning the stored snapshot."""


class MemoryOptionsStore(OptionsStore):
    """Options kept in process memory only."""

    def __init__(self, options: Optional[SiteOptions] = None):
        self._options = options or SiteOptions.from_env()

    async def get_options(self) -> SiteOptions:
        return self._options

    async def set_options(
        self, options: Union[SiteOptions, Mapping[str, Any]]
    ) -> SiteOptions:
        self._options = parse_options(options, self._options)
        logger.debug("Stored options in memory")
        return self._options


class FileOptionsStore(OptionsStore):
    """Options persisted as a JSON document on disk.

    A missing file yields the environment defaults. File access runs in a
    worker thread so the event loop never blocks on disk I/O.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self._path = Path(path or OPTIONS_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Optional[bytes]:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None

    def _write(self, payload: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(payload)

    async def get_options(self) -> SiteOptions:
        logger.debug("Reading options from %s", self._path)
        defaults = SiteOptions.from_env()
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            return defaults
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as err:
            raise InvalidConfigError(
                f"Options file {self._path} is not valid JSON: {err}"
            ) from err
        if not isinstance(data, dict):
            raise InvalidConfigError(
                f"Options file {self._path} must hold a JSON object"
            )
        return parse_options(data, defaults)

    async def set_options(
        self, options: Union[SiteOptions, Mapping[str, Any]]
    ) -> SiteOptions:
        try:
            current = await self.get_options()
        except InvalidConfigError as err:
            logger.warning("Replacing unreadable options file %s: %s", self._path, err)
            current = SiteOptions.from_env()
        stored = parse_options(options, current)
        await asyncio.to_thread(self._write, orjson.dumps(stored.to_storage()))
        logger.debug("Persisted options in %s", self._path)
        return stored
