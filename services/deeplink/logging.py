"""
Deep link logging - route this project's loguru output at a chosen level.

Each DynalinksContext owns the sink it installs and removes it on close.
Sinks installed by the host are never touched.
"""

import sys
from typing import Optional

from loguru import logger

from services.deeplink.config import LogLevel

LOG_MODULES = ("lib.attribution", "services.deeplink", "workflows")

LOGURU_LEVELS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def _is_own_record(record) -> bool:
    name = record["name"] or ""
    return name.startswith(LOG_MODULES)


def configure_logging(level: LogLevel, sink=sys.stderr) -> Optional[int]:
    """
    Install a sink for deep link logs at `level`.

    Returns the loguru handler id for remove_logging(), or None for
    LogLevel.NONE, which installs nothing.
    """
    if level == LogLevel.NONE:
        return None

    return logger.add(
        sink,
        level=LOGURU_LEVELS[level],
        filter=_is_own_record,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | Dynalinks | {message}",
    )


def remove_logging(handler_id: Optional[int]) -> None:
    """Remove a sink installed by configure_logging(). None is a no-op."""
    if handler_id is None:
        return
    try:
        logger.remove(handler_id)
    except ValueError:
        # Host already removed it (e.g. logger.remove() with no args)
        pass
