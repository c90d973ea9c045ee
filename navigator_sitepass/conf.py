"""
Sitepass Configuration — defaults shared by the derivation core.

Environment overrides:
    SITEPASS_OPTIONS_FILE = <path of the JSON options file>

The default pepper and length are overridden at call time, see
:meth:`navigator_sitepass.options.SiteOptions.from_env`.
"""
import os

LOGGER_NAME = "navigator.sitepass"

DEFAULT_SECRET = ""
DEFAULT_LENGTH = 10

# Bounds of a derived password: 3 is the shortest candidate the acceptance
# check can pass, 24 is the length of an encoded MD5 digest.
MIN_LENGTH = 3
MAX_LENGTH = 24

# Hash rounds performed before any candidate may be accepted.
MIN_ROUNDS = 10

OPTIONS_FILE = os.environ.get(
    "SITEPASS_OPTIONS_FILE",
    os.path.join(os.path.expanduser("~"), ".navigator-sitepass.json"),
)
