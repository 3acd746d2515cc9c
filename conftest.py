"""Pytest configuration and shared fixtures."""

from typing import Callable, Optional

import httpx
import pytest
from loguru import logger

from lib.attribution.client import AttributionClient
from services.deeplink.repo import MemoryCheckStateRepo


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test (hits the real attribution API)")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru output out of test runs and restore it afterwards."""
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def link_payload() -> dict:
    """A fully populated link object as returned by the attribution API."""
    return {
        "id": "550e8400-e29b-41d4-a716-446655440000",
        "name": "Summer promo",
        "path": "/promo",
        "shortened_path": "abc123",
        "url": "https://shop.example.com/summer",
        "full_url": "https://demo.dynalinks.app/abc123",
        "deep_link_value": "promo/summer",
        "android_fallback_url": "https://play.google.com/store/apps/details?id=com.example",
        "ios_fallback_url": "https://apps.apple.com/app/id123",
        "enable_forced_redirect": False,
        "social_title": "Summer Sale",
        "social_description": "Up to 50% off",
        "social_image_url": "https://cdn.example.com/summer.png",
        "clicks": 42,
    }


DYNALINKS_ENV_VARS = [
    "DYNALINKS_CLIENT_API_KEY",
    "DYNALINKS_BASE_URL",
    "DYNALINKS_LOG_LEVEL",
    "DYNALINKS_ALLOW_EMULATOR",
    "DYNALINKS_PLATFORM",
    "DYNALINKS_MAX_RETRIES",
    "DYNALINKS_REQUEST_TIMEOUT",
    "DYNALINKS_REFERRER_TIMEOUT",
    "DYNALINKS_STATE_PATH",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No DYNALINKS_* variables set, working directory in a scratch folder."""
    for var in DYNALINKS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def memory_repo() -> MemoryCheckStateRepo:
    return MemoryCheckStateRepo()


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


class ScriptedTransport(httpx.MockTransport):
    """MockTransport that replays a list of responses (or exceptions) in order.

    The last entry repeats once the script runs out.
    """

    def __init__(self, script: list):
        self.script = list(script)
        self.requests: list[httpx.Request] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests) - 1, len(self.script) - 1)
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        # Fresh copy so a repeated entry can be sent more than once
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)


@pytest.fixture
def make_transport() -> Callable[[list], ScriptedTransport]:
    return ScriptedTransport


@pytest.fixture
def make_client(recording_sleep) -> Callable[..., AttributionClient]:
    """Build an AttributionClient over a scripted transport."""

    def factory(transport: httpx.AsyncBaseTransport, max_retries: int = 3, base_url: Optional[str] = None):
        return AttributionClient(
            base_url or "https://api.test/v1",
            "pk_test_1234567890",
            max_retries=max_retries,
            transport=transport,
            sleep=recording_sleep,
        )

    return factory
