"""Install referrer parsing.

The referrer is a form-encoded string such as
`utm_source=dynalinks&_url=aHR0cHM6Ly9leGFtcGxlLmNvbS9w`. Two formats carry the link:

  _url  base64url (no padding), current format, always preferred
  url   percent-encoded, legacy format
"""

import base64
import binascii
import re
from typing import Optional
from urllib.parse import unquote_plus

from loguru import logger

ALLOWED_SCHEMES = ("https://", "http://")

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def split_pairs(query: str) -> list[tuple[str, str]]:
    """Split `a=1&b=2` into pairs, splitting each on the first `=` only.

    Pairs without `=` are dropped.
    """
    pairs = []
    for part in query.split("&"):
        key, sep, value = part.partition("=")
        if sep:
            pairs.append((key, value))
    return pairs


def percent_decode(value: str) -> Optional[str]:
    """Form-decode a value (`+` is a space). Returns None on malformed input."""
    if _MALFORMED_ESCAPE.search(value):
        return None
    try:
        return unquote_plus(value, errors="strict")
    except UnicodeDecodeError:
        return None


def _decode_base64url(value: str) -> Optional[str]:
    stripped = value.rstrip("=")
    if len(stripped) % 4 == 1:
        return None
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError):
        # UnicodeDecodeError is a ValueError
        return None


def _first(pairs: list[tuple[str, str]], key: str) -> Optional[str]:
    for k, v in pairs:
        if k == key:
            return v
    return None


def _is_http_url(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(ALLOWED_SCHEMES)


def parse_referrer(referrer: Optional[str]) -> Optional[str]:
    """Extract the link URL from an install referrer string.

    Tries `_url` first, then falls back to `url`. Returns None when neither
    yields an http(s) URL. Never raises.
    """
    if referrer is None or not referrer.strip():
        return None

    pairs = split_pairs(referrer)

    encoded = _first(pairs, "_url")
    if encoded is not None:
        decoded = _decode_base64url(encoded)
        if decoded is None:
            logger.debug("Failed to decode _url parameter")
        elif _is_http_url(decoded):
            logger.debug(f"Found URL in _url parameter (base64): {decoded}")
            return decoded
        else:
            logger.debug(f"Ignoring non-HTTP _url value: {decoded}")

    legacy = _first(pairs, "url")
    if legacy is not None:
        decoded = percent_decode(legacy)
        if _is_http_url(decoded):
            logger.debug(f"Found URL in url parameter: {decoded}")
            return decoded
        logger.debug(f"Ignoring url parameter: {legacy}")

    return None
