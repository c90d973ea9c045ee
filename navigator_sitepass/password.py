"""
Password Derivation — iterated hashing of master secret, pepper and site.

The seed ``master_secret + site_pepper + ":" + site_identity`` is hashed
repeatedly. After each round the leading ``length`` characters of the rolling
value are checked; derivation stops once at least ``MIN_ROUNDS`` rounds ran
and the candidate starts with a lowercase letter and holds a digit and an
uppercase letter after the first position.

Each round is MD5 over the UTF-8 text, Base64 encoded with ``+``, ``/`` and
``=`` mapped to ``9``, ``8`` and ``A``. Outputs are therefore stable across
implementations and only use ``[A-Za-z0-9]``.

Security Note:
    This is not a key-derivation function, every round is a single MD5.
    Never log seeds or derived passwords.
"""
import re
import base64

from cryptography.hazmat.primitives import hashes

from .conf import MIN_LENGTH, MAX_LENGTH, MIN_ROUNDS
from .exceptions import InvalidConfigError

_BASE64_SUBSTITUTES = str.maketrans({"+": "9", "/": "8", "=": "A"})

_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_UPPER = re.compile(r"[A-Z]")


def build_seed(master_secret: str, site_pepper: str, identity: str) -> str:
    """Compose the text hashed in the first round."""
    return f"{master_secret}{site_pepper}:{identity}"


def digest_text(value: str) -> str:
    """One hash round: MD5 digest of ``value`` as 24 alphanumeric characters."""
    digest = hashes.Hash(hashes.MD5())
    digest.update(value.encode("utf-8"))
    encoded = base64.b64encode(digest.finalize()).decode("ascii")
    return encoded.translate(_BASE64_SUBSTITUTES)


def _first_index(pattern: re.Pattern, value: str) -> int:
    match = pattern.search(value)
    return match.start() if match else -1


def check_password(candidate: str) -> bool:
    """Acceptance check for a truncated candidate.

    The digit and the uppercase letter only have to appear after index 0;
    they are not required to sit at different positions from each other.
    """
    return (
        _first_index(_LOWER, candidate) == 0
        and _first_index(_DIGIT, candidate) > 0
        and _first_index(_UPPER, candidate) > 0
    )


def validate_length(length: int) -> int:
    """Ensure a desired password length can be produced.

    Raises:
        InvalidConfigError: If ``length`` is not an int within
            ``MIN_LENGTH``..``MAX_LENGTH``.
    """
    if isinstance(length, bool) or not isinstance(length, int):
        raise InvalidConfigError(
            f"Password length must be an integer, got {type(length).__name__}"
        )
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise InvalidConfigError(
            f"Password length must be between {MIN_LENGTH} and {MAX_LENGTH}, "
            f"got {length}"
        )
    return length


def derive_rounds(seed: str, length: int) -> tuple[str, int]:
    """Derive a password and report how many hash rounds it took.

    Args:
        seed: Text from :func:`build_seed`.
        length: Desired password length.

    Returns:
        Tuple of (password, rounds).

    Raises:
        InvalidConfigError: If ``length`` is out of bounds.
    """
    validate_length(length)
    value = seed
    rounds = 0
    while rounds < MIN_ROUNDS or not check_password(value[:length]):
        value = digest_text(value)
        rounds += 1
    return value[:length], rounds


def derive(seed: str, length: int) -> str:
    """Derive the password for ``seed`` with ``length`` characters."""
    password, _ = derive_rounds(seed, length)
    return password


def derive_password(
    master_secret: str,
    site_pepper: str,
    identity: str,
    length: int,
) -> str:
    """Derive the password of one site from its parts."""
    return derive(build_seed(master_secret, site_pepper, identity), length)
