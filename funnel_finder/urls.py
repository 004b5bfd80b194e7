"""
URL Policy Module

Pure helpers for normalizing, comparing and resolving URLs. The normalized
string produced here is the identity key used for deduplication everywhere
else (crawl seen-set, candidate set, funnel graph nodes).
"""

import re
from typing import Optional, Tuple
from urllib.parse import SplitResult, unquote_plus, urljoin, urlsplit, urlunsplit

from .errors import InvalidUrl


# Query keys removed by strip_tracking_params (UTM and ad-click identifiers)
TRACKING_PARAMS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "gclid",
    "fbclid",
    "msclkid",
    "ttclid",
    "twclid",
    "li_fat_id",
    "wbraid",
    "gbraid",
)

DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_SKIPPED_HREF_PREFIXES = ("mailto:", "tel:", "javascript:")


def _canonical(parts: SplitResult, query: Optional[str] = None) -> str:
    """
    Rebuild an absolute http(s) URL in canonical form.

    Lowercases scheme and host, drops default ports, user info and the
    fragment, and uses "/" for an empty path.

    Args:
        parts: Parsed URL
        query: Replacement query string (defaults to the parsed one)

    Returns:
        Canonical URL string

    Raises:
        ValueError: If the URL has no host, a non-web scheme or a bad port
    """
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise ValueError(f"Unsupported scheme: {parts.scheme!r}")

    host = parts.hostname
    if not host:
        raise ValueError("URL has no host")

    port = parts.port  # raises ValueError for out-of-range ports
    if ":" in host:
        host = f"[{host}]"
    netloc = host if port is None or port == DEFAULT_PORTS[scheme] else f"{host}:{port}"

    return urlunsplit(
        (
            scheme,
            netloc,
            parts.path or "/",
            parts.query if query is None else query,
            "",
        )
    )


def normalize(url: str) -> str:
    """
    Normalize user input into an absolute URL without fragment.

    Input without a scheme is treated as https.

    Args:
        url: Raw URL string, e.g. "example.com/offer"

    Returns:
        Normalized absolute URL

    Raises:
        InvalidUrl: If the input is empty or cannot be parsed
    """
    trimmed = (url or "").strip()
    if not trimmed:
        raise InvalidUrl("Empty URL")

    if not _SCHEME_RE.match(trimmed):
        trimmed = f"https://{trimmed}"

    try:
        return _canonical(urlsplit(trimmed))
    except ValueError as e:
        raise InvalidUrl(f"Invalid URL {url!r}: {e}") from e


def _origin(url: str) -> Tuple[str, str, int]:
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    port = parts.port or DEFAULT_PORTS.get(scheme, 0)
    return scheme, (parts.hostname or ""), port


def same_origin(a: str, b: str) -> bool:
    """Return True iff both URLs share scheme, host and port."""
    try:
        origin_a = _origin(a)
        origin_b = _origin(b)
    except ValueError:
        return False
    return bool(origin_a[1]) and origin_a == origin_b


def origin_of(url: str) -> str:
    """Return "scheme://host[:port]" for an absolute URL."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))


def resolve_link(base_url: str, href: Optional[str]) -> Optional[str]:
    """
    Resolve an href found on a page into an absolute URL.

    Args:
        base_url: URL of the page the link was found on
        href: Raw href attribute value

    Returns:
        Absolute URL without fragment, or None for empty, fragment-only,
        mailto:, tel: and javascript: targets and anything unresolvable
    """
    href = (href or "").strip()
    if not href or href.startswith("#"):
        return None
    if href.lower().startswith(_SKIPPED_HREF_PREFIXES):
        return None

    try:
        return _canonical(urlsplit(urljoin(base_url, href)))
    except ValueError:
        return None


def strip_tracking_params(url: str) -> str:
    """
    Remove tracking query parameters and return the canonical URL.

    Parameters that are not on the denylist are kept verbatim and in their
    original order.

    Args:
        url: Absolute URL

    Returns:
        Canonical URL without tracking parameters

    Raises:
        InvalidUrl: If the URL is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(url)
        kept = [
            pair
            for pair in parts.query.split("&")
            if pair and unquote_plus(pair.split("=", 1)[0]) not in TRACKING_PARAMS
        ]
        return _canonical(parts, query="&".join(kept))
    except ValueError as e:
        raise InvalidUrl(f"Invalid URL {url!r}: {e}") from e


def path_of(url: str) -> str:
    """Return the lowercased path of a URL ("/" when empty)."""
    return (urlsplit(url).path or "/").lower()
