"""Enrich unnamed links with metadata from the link URL's own query string.

A link created without a curated deep_link_value carries its display and
redirect settings as query params on the URL the user clicked, e.g.

  https://demo.dynalinks.app/x?link=https%3A%2F%2Fshop.example&st=Sale&efr=true
"""

from typing import Optional
from urllib.parse import urlsplit

from loguru import logger

from lib.attribution.models import LinkData
from lib.attribution.referrer import percent_decode, split_pairs

# Query key -> LinkData field
STRING_PARAMS = {
    "link": "url",
    "st": "social_title",
    "sd": "social_description",
    "si": "social_image_url",
    "afl": "android_fallback_url",
    "ifl": "ios_fallback_url",
    "referrer": "referrer",
}

BOOL_PARAMS = {
    "efr": "enable_forced_redirect",
    "ide": "ios_deferred_deep_linking_enabled",
}


def _strict_bool(value: str) -> Optional[bool]:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def parse_query_params(url: str) -> dict[str, str]:
    """Decode the query string of `url` into a dict. Last duplicate wins.

    Returns an empty dict when the URL has no query or cannot be parsed.
    Values that fail to decode are dropped.
    """
    try:
        query = urlsplit(url).query
    except ValueError as e:
        logger.debug(f"Failed to parse URL for query params: {e}")
        return {}
    if not query:
        return {}

    params = {}
    for key, raw in split_pairs(query):
        value = percent_decode(raw)
        if value is not None:
            params[key] = value
    return params


def enrich_link_data(request_url: str, link: LinkData) -> LinkData:
    """Overlay query params from `request_url` onto `link`.

    Only keys present in the query replace existing values; everything else is
    kept. Returns `link` itself when there is nothing to apply.
    """
    params = parse_query_params(request_url)
    if not params:
        return link

    updates = {}
    for key, field in STRING_PARAMS.items():
        if key in params:
            updates[field] = params[key]
    for key, field in BOOL_PARAMS.items():
        if key in params:
            parsed = _strict_bool(params[key])
            if parsed is not None:
                updates[field] = parsed

    if not updates:
        return link

    logger.debug(f"Enriching unnamed link with query params: {updates}")
    return link.model_copy(update=updates)
