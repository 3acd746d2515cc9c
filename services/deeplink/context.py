"""Host-owned entry point for deep link resolution.

Usage:
    context = DynalinksContext()
    context.configure(DynalinksConfig.from_env(), referrer_provider=provider)

    result = await context.resolve_deferred()
    if result.matched:
        navigate(result.link.deep_link_value)

    await context.aclose()

The host decides the lifetime; there is no module-level instance.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
from loguru import logger

from lib.attribution import SDK_VERSION
from lib.attribution.client import AttributionClient
from lib.attribution.errors import DynalinksError, InvalidAPIKey, NetworkError, NotConfigured
from lib.attribution.models import DeepLinkResult
from services.deeplink.config import DynalinksConfig
from services.deeplink.logging import configure_logging, remove_logging
from services.deeplink.referrer_source import IReferrerProvider
from services.deeplink.repo import FileCheckStateRepo, ICheckStateRepo, MemoryCheckStateRepo
from services.deeplink.service import DeepLinkService

T = TypeVar("T")


class DynalinksContext:
    """Configured state for resolving deep links. Unconfigured until configure()."""

    def __init__(self):
        self.config: Optional[DynalinksConfig] = None
        self._client: Optional[AttributionClient] = None
        self._service: Optional[DeepLinkService] = None
        self._log_handler_id: Optional[int] = None

    @property
    def is_configured(self) -> bool:
        return self._service is not None

    def configure(
        self,
        config: DynalinksConfig,
        *,
        referrer_provider: Optional[IReferrerProvider] = None,
        repo: Optional[ICheckStateRepo] = None,
        emulator_checker: Optional[Callable[[], bool]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Set up the client, state repo and resolver. Later calls are ignored.

        Raises:
            InvalidAPIKey: client_api_key is blank
        """
        if not config.client_api_key.strip():
            raise InvalidAPIKey("Client API key cannot be empty")

        if self._service is not None:
            logger.debug("Dynalinks already configured, skipping")
            return

        self._log_handler_id = configure_logging(config.log_level)

        if repo is None:
            if config.state_path:
                repo = FileCheckStateRepo(config.state_path)
            else:
                repo = MemoryCheckStateRepo()

        self._client = AttributionClient(
            config.base_url,
            config.client_api_key,
            platform=config.platform,
            max_retries=config.max_retries,
            timeout=config.request_timeout,
            transport=transport,
        )
        self._service = DeepLinkService(
            self._client,
            repo,
            referrer_provider,
            allow_emulator=config.allow_emulator,
            emulator_checker=emulator_checker or config.device.is_emulator,
            referrer_timeout=config.referrer_timeout,
        )
        self.config = config
        logger.info(f"Dynalinks v{SDK_VERSION} configured")

    def _require_service(self) -> DeepLinkService:
        if self._service is None:
            raise NotConfigured()
        return self._service

    async def resolve_deferred(self) -> DeepLinkResult:
        """Check for a deferred deep link (see DeepLinkService.resolve_deferred)."""
        return await self._require_service().resolve_deferred()

    async def resolve_direct(self, url: Optional[str]) -> DeepLinkResult:
        """Resolve a link the app was opened with."""
        return await self._require_service().resolve_direct(url)

    async def reset(self) -> None:
        """Allow one more deferred check. No-op before configure()."""
        if self._service is None:
            return
        await self._service.reset()

    async def aclose(self) -> None:
        """Release the HTTP client and log sink and return to the unconfigured state."""
        if self._client is not None:
            await self._client.aclose()
        remove_logging(self._log_handler_id)
        self._log_handler_id = None
        self._client = None
        self._service = None
        self.config = None

    async def __aenter__(self) -> "DynalinksContext":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def run_with_callback(
    awaitable: Awaitable[T],
    on_success: Callable[[T], None],
    on_error: Callable[[DynalinksError], None],
) -> "asyncio.Task[None]":
    """Run a resolution on the current loop and report through callbacks.

    For hosts that don't await. Errors other than DynalinksError are reported
    as NetworkError. Must be called from inside a running event loop.
    """

    async def runner() -> None:
        try:
            result = await awaitable
        except DynalinksError as e:
            on_error(e)
            return
        except Exception as e:
            on_error(NetworkError(e))
            return
        on_success(result)

    return asyncio.get_running_loop().create_task(runner())
