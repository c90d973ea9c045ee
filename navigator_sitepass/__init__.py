"""Navigator Sitepass — reproducible per-site passwords from one master secret.

Security Note (Threat Model):
    The master secret is held in process memory while the session is
    unlocked. Derived passwords are never stored; they are recomputed on
    every request from the master secret, the site pepper and the site
    identity with fast MD5 rounds; this is not a slow key-derivation
    function.
"""

from .version import __version__
from .exceptions import (
    SitepassError,
    InvalidUrlError,
    InvalidConfigError,
    PromptDismissedError,
)
from .domain import extract_identity
from .password import derive, derive_password, derive_rounds
from .options import SiteOptions, MemoryOptionsStore, FileOptionsStore
from .session import SessionCoordinator, SessionState, UnlockPrompt
from .router import RequestRouter, GeneratedPassword
from .channel import MessageController, encode_frame, decode_frame

__all__ = [
    "__version__",
    "SitepassError",
    "InvalidUrlError",
    "InvalidConfigError",
    "PromptDismissedError",
    "extract_identity",
    "derive",
    "derive_password",
    "derive_rounds",
    "SiteOptions",
    "MemoryOptionsStore",
    "FileOptionsStore",
    "SessionCoordinator",
    "SessionState",
    "UnlockPrompt",
    "RequestRouter",
    "GeneratedPassword",
    "MessageController",
    "encode_frame",
    "decode_frame",
]
