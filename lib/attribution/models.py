"""Data models for deep link attribution.

Field names match the snake_case wire protocol of POST /links/attribute, so the
same models serve for parsing responses and for persisting cached results.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Confidence(str, Enum):
    """Confidence of a server-side match."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class LinkData(BaseModel):
    """Attributes of a matched link. Everything except `id` may be missing."""

    id: str
    name: Optional[str] = None
    path: Optional[str] = None
    shortened_path: Optional[str] = None
    url: Optional[str] = None  # Destination URL the link points to
    full_url: Optional[str] = None
    deep_link_value: Optional[str] = None  # In-app routing value; None for unnamed links
    android_fallback_url: Optional[str] = None
    ios_fallback_url: Optional[str] = None
    enable_forced_redirect: Optional[bool] = None
    social_title: Optional[str] = None
    social_description: Optional[str] = None
    social_image_url: Optional[str] = None
    clicks: Optional[int] = None
    referrer: Optional[str] = None
    provider_token: Optional[str] = None
    campaign_token: Optional[str] = None
    ios_deferred_deep_linking_enabled: Optional[bool] = None


class DeepLinkResult(BaseModel):
    """Outcome of one deferred or direct link resolution."""

    matched: bool
    confidence: Optional[Confidence] = None
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    link: Optional[LinkData] = None
    is_deferred: bool = False  # Provenance, set by the client, never by the server

    @model_validator(mode="after")
    def _unmatched_has_no_link(self) -> "DeepLinkResult":
        if not self.matched and self.link is not None:
            raise ValueError("unmatched result cannot carry link data")
        return self

    @classmethod
    def not_matched(cls, is_deferred: bool = False) -> "DeepLinkResult":
        return cls(matched=False, is_deferred=is_deferred)


class CheckState(BaseModel):
    """Persisted one-shot check record. CheckState() is the unchecked state."""

    has_checked_for_deferred_deep_link: bool = False
    cached_result: Optional[DeepLinkResult] = None


class AttributeRequest(BaseModel):
    """Request body for POST /links/attribute."""

    url: str
    platform: str
    is_deferred: bool = False


class AttributeResponse(BaseModel):
    """Response body for POST /links/attribute. `matched` is required."""

    matched: bool
    confidence: Optional[Confidence] = None
    match_score: Optional[int] = Field(default=None, ge=0, le=100)
    link: Optional[LinkData] = None
