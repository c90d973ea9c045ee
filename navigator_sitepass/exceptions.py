"""Sitepass exceptions."""


class SitepassError(Exception):
    """Base class for every error raised on the derivation path."""


class InvalidUrlError(SitepassError, ValueError):
    """The page URL cannot be reduced to a site identity."""


class InvalidConfigError(SitepassError, ValueError):
    """Stored options (site pepper, password length) are not usable."""


class PromptDismissedError(SitepassError):
    """The unlock prompt was closed before a master secret was entered."""

    def __init__(self, message: str = "Password prompt closed"):
        super().__init__(message)
