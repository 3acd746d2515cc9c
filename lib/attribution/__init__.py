"""Deferred deep link attribution.

Referrer parsing, the attribution API client and result enrichment.
Shared library: models, parsers and the HTTP client only.
Resolution state and orchestration live in services/deeplink/.
"""

SDK_VERSION = "1.0.1"

from lib.attribution.models import (  # noqa: E402
    CheckState,
    Confidence,
    DeepLinkResult,
    LinkData,
)
from lib.attribution.referrer import parse_referrer  # noqa: E402
from lib.attribution.enricher import enrich_link_data  # noqa: E402
from lib.attribution.client import AttributionClient  # noqa: E402

__all__ = [
    "SDK_VERSION",
    "AttributionClient",
    "CheckState",
    "Confidence",
    "DeepLinkResult",
    "LinkData",
    "enrich_link_data",
    "parse_referrer",
]
