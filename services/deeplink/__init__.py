"""Deep link resolution service: public interface."""

from services.deeplink.config import DynalinksConfig, LogLevel
from services.deeplink.context import DynalinksContext, run_with_callback
from services.deeplink.referrer_source import IReferrerProvider, StaticReferrerProvider
from services.deeplink.repo import FileCheckStateRepo, ICheckStateRepo, MemoryCheckStateRepo
from services.deeplink.service import DeepLinkService

__all__ = [
    "DeepLinkService",
    "DynalinksConfig",
    "DynalinksContext",
    "FileCheckStateRepo",
    "ICheckStateRepo",
    "IReferrerProvider",
    "LogLevel",
    "MemoryCheckStateRepo",
    "StaticReferrerProvider",
    "run_with_callback",
]
