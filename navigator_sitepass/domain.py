"""
Site Identity — reduce a page URL to the string used as per-site salt.

The identity is the registrable domain of the page host: every page under
``example.co.uk`` (``www.example.co.uk``, ``a.b.example.co.uk``) shares the
identity ``example.co.uk``, while unrelated domains never collide.

Registrable domains are found with a static table of multi-level public
suffixes. Anything not in the table is treated as a plain one-label TLD.
"""
import re
import logging

from yarl import URL

from .conf import LOGGER_NAME
from .exceptions import InvalidUrlError

logger = logging.getLogger(LOGGER_NAME)

LOCAL_FILE_IDENTITY = "localhost"

_IPV4_PATTERN = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}$")
_HOSTNAME_PATTERN = re.compile(r"^[a-z0-9_.-]+$")

MULTI_LEVEL_SUFFIXES = frozenset({
    # generic second-level registries
    "co.uk", "org.uk", "me.uk", "ltd.uk", "plc.uk", "net.uk", "sch.uk",
    "ac.uk", "gov.uk", "nhs.uk", "police.uk", "mod.uk",
    "com.au", "net.au", "org.au", "edu.au", "gov.au", "asn.au", "id.au",
    "co.nz", "net.nz", "org.nz", "ac.nz", "govt.nz", "geek.nz", "school.nz",
    "co.jp", "ne.jp", "or.jp", "ac.jp", "go.jp", "ad.jp", "ed.jp", "gr.jp",
    "lg.jp",
    "co.kr", "ne.kr", "or.kr", "ac.kr", "go.kr", "re.kr",
    "co.za", "org.za", "net.za", "gov.za", "ac.za", "web.za",
    "co.in", "net.in", "org.in", "firm.in", "gen.in", "ind.in", "ac.in",
    "gov.in", "edu.in", "res.in",
    "co.il", "org.il", "net.il", "ac.il", "gov.il", "muni.il",
    "co.id", "or.id", "web.id", "ac.id", "go.id",
    "co.th", "in.th", "or.th", "ac.th", "go.th",
    "com.br", "net.br", "org.br", "gov.br", "edu.br", "art.br", "blog.br",
    "com.ar", "net.ar", "org.ar", "gob.ar", "edu.ar",
    "com.mx", "net.mx", "org.mx", "gob.mx", "edu.mx",
    "com.co", "net.co", "org.co", "gov.co", "edu.co",
    "com.ve", "net.ve", "org.ve", "gob.ve", "edu.ve", "co.ve",
    "com.pe", "net.pe", "org.pe", "gob.pe", "edu.pe",
    "com.cn", "net.cn", "org.cn", "gov.cn", "edu.cn", "ac.cn",
    "com.hk", "net.hk", "org.hk", "gov.hk", "edu.hk",
    "com.tw", "net.tw", "org.tw", "gov.tw", "edu.tw", "idv.tw",
    "com.sg", "net.sg", "org.sg", "gov.sg", "edu.sg",
    "com.my", "net.my", "org.my", "gov.my", "edu.my",
    "com.ph", "net.ph", "org.ph", "gov.ph", "edu.ph",
    "com.tr", "net.tr", "org.tr", "gov.tr", "edu.tr", "gen.tr",
    "com.ua", "net.ua", "org.ua", "gov.ua", "in.ua",
    "com.pl", "net.pl", "org.pl", "gov.pl", "edu.pl",
    "com.ru", "net.ru", "org.ru", "msk.ru", "spb.ru",
    "com.eg", "com.sa", "com.pk", "com.ng", "com.vn", "com.es", "com.pt",
    "co.at", "or.at", "ac.at", "gv.at",
    "co.hu", "org.hu",
    "co.it",
    # nested registries, longer than their parents above
    "act.edu.au", "nsw.edu.au", "nt.edu.au", "qld.edu.au", "sa.edu.au",
    "tas.edu.au", "vic.edu.au", "wa.edu.au",
    "act.gov.au", "nsw.gov.au", "qld.gov.au", "vic.gov.au", "wa.gov.au",
    "ltd.co.im", "plc.co.im",
    "k12.ca.us", "k12.ny.us", "k12.tx.us", "lib.ca.us", "cc.ca.us",
    "pvt.k12.ma.us",
})

MAX_SUFFIX_LABELS = max(suffix.count(".") + 1 for suffix in MULTI_LEVEL_SUFFIXES)


def _parse(url: str) -> URL:
    try:
        parsed = URL(url)
    except (TypeError, ValueError) as err:
        raise InvalidUrlError(f"Invalid URL {url!r}: {err}") from err
    if not parsed.scheme:
        raise InvalidUrlError(f"Invalid URL {url!r}: missing scheme")
    return parsed


def registrable_domain(host: str) -> str:
    """Return the registrable part of an (already lower-cased) host name.

    Longer suffixes are tried first, so a nested public suffix such as
    ``nsw.edu.au`` wins over its parent ``edu.au``.
    """
    labels = host.split(".")
    if len(labels) < 2:
        return host
    for size in range(min(MAX_SUFFIX_LABELS, len(labels) - 1), 1, -1):
        if ".".join(labels[-size:]) in MULTI_LEVEL_SUFFIXES:
            return ".".join(labels[-size - 1:])
    return ".".join(labels[-2:])


def extract_identity(url: str) -> str:
    """Reduce a page URL to its site identity.

    Args:
        url: Absolute page URL.

    Returns:
        ``localhost`` for local files, the host itself for IP hosts,
        otherwise the registrable domain of the host.

    Raises:
        InvalidUrlError: If the URL cannot be parsed or carries no usable
            host name.
    """
    parsed = _parse(url)
    host = (parsed.raw_host or "").rstrip(".").lower()
    if not host:
        if parsed.scheme == "file":
            return LOCAL_FILE_IDENTITY
        raise InvalidUrlError(f"Invalid URL {url!r}: missing host")
    if ":" not in host and not _HOSTNAME_PATTERN.match(host):
        # IPv6 literals skip the host name check
        raise InvalidUrlError(f"Invalid URL {url!r}: invalid host {host!r}")
    if _IPV4_PATTERN.match(host):
        return host
    identity = registrable_domain(host)
    logger.debug("Site identity for host %s: %s", host, identity)
    return identity
