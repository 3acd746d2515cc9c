"""Business logic for deferred and direct deep link resolution.

Deferred: check the install referrer once per install, attribute the link it
carries, cache a match. Direct: attribute a URL the app was opened with.

State machine (persisted in CheckState):
    Unchecked --resolve_deferred / resolve_direct--> Checked (NoMatch | Matched)
    Checked   --reset--> Unchecked
Checked is terminal: no referrer fetch or network call until reset.
"""

import asyncio
from typing import Callable, Optional
from urllib.parse import urlsplit

from loguru import logger

from lib.attribution.client import AttributionClient
from lib.attribution.errors import Emulator, InvalidIntent
from lib.attribution.models import CheckState, DeepLinkResult
from lib.attribution.referrer import parse_referrer
from services.deeplink.referrer_source import (
    DEFAULT_REFERRER_TIMEOUT,
    IReferrerProvider,
    fetch_referrer,
)
from services.deeplink.repo import ICheckStateRepo


def _never_emulator() -> bool:
    return False


class DeepLinkService:
    """Resolves deferred and direct deep links.

    Uses dependency injection for the attribution client, state repo and
    referrer provider. All resolutions and resets are serialized by one lock,
    so concurrent deferred checks make at most one attribution call.
    """

    def __init__(
        self,
        client: AttributionClient,
        repo: ICheckStateRepo,
        referrer_provider: Optional[IReferrerProvider] = None,
        *,
        allow_emulator: bool = False,
        emulator_checker: Optional[Callable[[], bool]] = None,
        referrer_timeout: float = DEFAULT_REFERRER_TIMEOUT,
    ):
        self.client = client
        self.repo = repo
        self.referrer_provider = referrer_provider
        self.allow_emulator = allow_emulator
        self.emulator_checker = emulator_checker or _never_emulator
        self.referrer_timeout = referrer_timeout
        self._lock = asyncio.Lock()

    async def get_state(self) -> CheckState:
        async with self._lock:
            return await self.repo.load()

    async def resolve_deferred(self) -> DeepLinkResult:
        """Check for a deferred deep link. Only the first call per install hits the network."""
        async with self._lock:
            state = await self.repo.load()

            if state.has_checked_for_deferred_deep_link:
                logger.debug("Already checked for deferred deep link")
                if state.cached_result is not None:
                    logger.info("Returning cached result")
                    return state.cached_result
                logger.info("Previously checked, no match found")
                return DeepLinkResult.not_matched(is_deferred=True)

            if not self.allow_emulator and self.emulator_checker():
                logger.info("Skipping deferred deep link check on emulator")
                await self._mark_checked(state)
                raise Emulator()

            try:
                referrer = await self._get_referrer()
            except Exception as e:
                logger.error(f"Failed to get install referrer: {e}")
                await self._mark_checked(state)
                raise

            url = parse_referrer(referrer)
            if url is None:
                logger.info("No Dynalinks referrer found")
                await self._mark_checked(state)
                return DeepLinkResult.not_matched(is_deferred=True)

            logger.info(f"Found Dynalinks URL in referrer: {url}")
            try:
                result = await self.client.attribute(url, is_deferred=True)
            except Exception as e:
                logger.error(f"Failed to attribute link: {e}")
                await self._mark_checked(state)
                raise

            await self._mark_checked(state, result)
            if result.matched:
                logger.info(f"Deferred deep link found: {result.link.deep_link_value}")
            else:
                logger.info("No match found for referrer URL")
            return result

    async def resolve_direct(self, url: Optional[str]) -> DeepLinkResult:
        """Resolve a link the app was opened with. Suppresses any later deferred check."""
        if not url or not url.strip():
            raise InvalidIntent()
        url = url.strip()
        try:
            scheme = urlsplit(url).scheme
        except ValueError as e:
            raise InvalidIntent() from e
        if not scheme:
            raise InvalidIntent()

        async with self._lock:
            logger.debug(f"Handling App Link: {url}")

            # A direct open means the deferred check is no longer wanted
            state = await self.repo.load()
            state = await self._mark_checked(state)

            result = await self.client.attribute(url, is_deferred=False)

            if result.matched:
                await self._mark_checked(state, result)
                logger.info(f"App Link resolved: {result.link.path}")
            else:
                logger.info("App Link not matched")
            return result

    async def reset(self) -> None:
        """Return to Unchecked with no cached result. Test and debug use only."""
        async with self._lock:
            await self.repo.reset()
        logger.info("Deep link state reset")

    async def _get_referrer(self) -> Optional[str]:
        if self.referrer_provider is None:
            return None
        return await fetch_referrer(self.referrer_provider, timeout=self.referrer_timeout)

    async def _mark_checked(
        self,
        state: CheckState,
        result: Optional[DeepLinkResult] = None,
    ) -> CheckState:
        """Set the checked flag, caching `result` if it matched. Returns the saved state."""
        updated = state.model_copy(update={"has_checked_for_deferred_deep_link": True})
        if result is not None and result.matched:
            updated = updated.model_copy(update={"cached_result": result})
        await self.repo.save(updated)
        return updated
