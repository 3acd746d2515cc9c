"""Attribution API client.

Resolves a link URL against the attribution service:

    POST {base_url}/links/attribute
    {"url": "...", "platform": "android", "is_deferred": true}

Usage:
    async with AttributionClient(base_url, api_key) as client:
        result = await client.attribute(url, is_deferred=True)

Retries 5xx responses and transport failures with a fixed backoff schedule.
Everything else (4xx, malformed payloads) fails on the first attempt.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

import httpx
from loguru import logger
from pydantic import ValidationError

from lib.attribution import SDK_VERSION
from lib.attribution.enricher import enrich_link_data
from lib.attribution.errors import (
    DynalinksError,
    InvalidResponse,
    NetworkError,
    ServerError,
)
from lib.attribution.models import AttributeRequest, AttributeResponse, DeepLinkResult

DEFAULT_MAX_RETRIES = 3
DEFAULT_TIMEOUT = 10.0
RETRY_DELAYS = (1.0, 2.0, 4.0)  # seconds, indexed by attempt
USER_AGENT = f"DynalinksSDK-Python/{SDK_VERSION}"


def retry_delay(attempt: int, delays: Sequence[float] = RETRY_DELAYS) -> float:
    """Backoff before the attempt after `attempt` (0-based). Clamped to the last entry."""
    return delays[min(attempt, len(delays) - 1)]


class AttributionClient:
    """HTTP client for the link attribution endpoint."""

    def __init__(
        self,
        base_url: str,
        client_api_key: str,
        *,
        platform: str = "android",
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        retry_delays: Sequence[float] = RETRY_DELAYS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_api_key = client_api_key
        self.platform = platform
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_delays = tuple(retry_delays) or RETRY_DELAYS
        self._transport = transport
        self._sleep = sleep
        self._http_client: Optional[httpx.AsyncClient] = None

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/links/attribute"

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            kwargs = {"timeout": self.timeout}
            if self._transport is not None:
                kwargs["transport"] = self._transport
            self._http_client = httpx.AsyncClient(**kwargs)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "AttributionClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def attribute(self, url: str, is_deferred: bool = False) -> DeepLinkResult:
        """Attribute a link URL and return the resolved result.

        Raises:
            ServerError: non-2xx response (after retries for 5xx)
            NetworkError: transport failure (after retries)
            InvalidResponse: empty or schema-violating body
        """
        last_error: Optional[DynalinksError] = None

        for attempt in range(self.max_retries):
            try:
                return await self._send(url, is_deferred)
            except ServerError as e:
                if not e.is_retryable:
                    raise
                logger.warning(
                    f"Server error (attempt {attempt + 1}/{self.max_retries}): {e.status_code}"
                )
                last_error = e
            except httpx.TransportError as e:
                logger.warning(
                    f"Network error (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                last_error = NetworkError(e)
            except DynalinksError:
                raise
            except Exception as e:
                logger.error(f"Unexpected error attributing link: {e}")
                raise NetworkError(e) from e

            if attempt < self.max_retries - 1:
                await self._sleep(retry_delay(attempt, self.retry_delays))

        raise last_error or NetworkError(None)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.client_api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def _send(self, url: str, is_deferred: bool) -> DeepLinkResult:
        """One request/response cycle, no retries."""
        body = AttributeRequest(url=url, platform=self.platform, is_deferred=is_deferred)
        payload = body.model_dump_json()

        logger.debug(f"Attributing link: {url}")
        logger.debug(f"Request URL: {self.endpoint}")
        logger.debug(f"Authorization: Bearer {self.client_api_key[:8]}...")
        logger.debug(f"Request body: {payload}")

        response = await self._get_http_client().post(
            self.endpoint, content=payload, headers=self._headers()
        )

        if not response.is_success:
            error_body = response.text or None
            logger.error(f"Server error: {response.status_code} - {error_body}")
            raise ServerError(response.status_code, error_body)

        text = response.text
        if not text.strip():
            logger.error("Empty response body")
            raise InvalidResponse()

        logger.debug(f"Response: {text}")

        try:
            parsed = AttributeResponse.model_validate_json(text)
        except ValidationError as e:
            logger.error(f"Invalid JSON response: {e}")
            raise InvalidResponse() from e

        return self._to_result(url, parsed, is_deferred)

    @staticmethod
    def _to_result(url: str, parsed: AttributeResponse, is_deferred: bool) -> DeepLinkResult:
        # matched without link data is treated as no match
        if not parsed.matched or parsed.link is None:
            return DeepLinkResult.not_matched(is_deferred)

        link = parsed.link
        if link.deep_link_value is None:
            link = enrich_link_data(url, link)

        return DeepLinkResult(
            matched=True,
            confidence=parsed.confidence,
            match_score=parsed.match_score,
            link=link,
            is_deferred=is_deferred,
        )
