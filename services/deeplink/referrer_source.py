"""Install referrer transport boundary.

The platform component that yields the raw referrer string lives outside this
project. It plugs in through IReferrerProvider; fetch_referrer() bounds the
wait and always tears the connection down.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger

DEFAULT_REFERRER_TIMEOUT = 5.0


class IReferrerProvider(ABC):
    """Interface for the install referrer transport."""

    @abstractmethod
    async def get_referrer(self) -> Optional[str]:
        """Return the raw install referrer, or None if there is none.

        May raise InstallReferrerUnavailable or InstallReferrerTimeout.
        """
        pass

    async def end_connection(self) -> None:
        """Release any platform connection. Called after every fetch."""
        return None


class StaticReferrerProvider(IReferrerProvider):
    """Referrer the host already holds (CLI arg, env var, server callback)."""

    def __init__(self, referrer: Optional[str]):
        self.referrer = referrer

    async def get_referrer(self) -> Optional[str]:
        return self.referrer


async def fetch_referrer(
    provider: IReferrerProvider,
    timeout: float = DEFAULT_REFERRER_TIMEOUT,
) -> Optional[str]:
    """Get the raw referrer, waiting at most `timeout` seconds.

    A timeout resolves as no referrer. Cancellation propagates to the caller.
    """
    logger.debug(f"Getting install referrer (timeout: {timeout}s)")
    try:
        referrer = await asyncio.wait_for(provider.get_referrer(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Install referrer not received within {timeout}s")
        return None
    finally:
        await _end_connection(provider)

    logger.debug(f"Install referrer: {referrer}")
    return referrer


async def _end_connection(provider: IReferrerProvider) -> None:
    # Best-effort teardown
    try:
        await provider.end_connection()
    except Exception as e:
        logger.debug(f"Error ending referrer connection: {e}")
