"""Storage for the deferred deep link check state.

Two fields only: whether this install has already checked for a deferred deep
link, and the cached matched result. MemoryCheckStateRepo for tests and
short-lived hosts, FileCheckStateRepo for state that must survive restarts.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from pydantic import ValidationError

from lib.attribution.models import CheckState, DeepLinkResult

KEY_HAS_CHECKED = "has_checked_for_deferred_deep_link"
KEY_CACHED_RESULT = "cached_result"


class ICheckStateRepo(ABC):
    """Interface for check state persistence."""

    @abstractmethod
    async def load(self) -> CheckState:
        """Read the current state. Missing state reads as unchecked."""
        pass

    @abstractmethod
    async def save(self, state: CheckState) -> None:
        """Replace the stored state."""
        pass

    @abstractmethod
    async def reset(self) -> None:
        """Clear both fields."""
        pass


class MemoryCheckStateRepo(ICheckStateRepo):
    """In-process state. Lost on restart."""

    def __init__(self, state: Optional[CheckState] = None):
        self._state = state or CheckState()

    async def load(self) -> CheckState:
        return self._state.model_copy(deep=True)

    async def save(self, state: CheckState) -> None:
        self._state = state.model_copy(deep=True)

    async def reset(self) -> None:
        self._state = CheckState()


class FileCheckStateRepo(ICheckStateRepo):
    """JSON file state, written atomically.

    File layout:
        {"has_checked_for_deferred_deep_link": true,
         "cached_result": {"matched": true, "link": {...}, "is_deferred": true}}
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    async def load(self) -> CheckState:
        if not self.path.exists():
            return CheckState()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read check state from {self.path}: {e}")
            return CheckState()

        if not isinstance(data, dict):
            logger.error(f"Unexpected check state in {self.path}, ignoring")
            return CheckState()

        return CheckState(
            has_checked_for_deferred_deep_link=data.get(KEY_HAS_CHECKED) is True,
            cached_result=self._parse_cached(data.get(KEY_CACHED_RESULT)),
        )

    def _parse_cached(self, raw) -> Optional[DeepLinkResult]:
        if raw is None:
            return None
        try:
            return DeepLinkResult.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Failed to parse cached result: {e}")
            return None

    async def save(self, state: CheckState) -> None:
        payload = {
            KEY_HAS_CHECKED: state.has_checked_for_deferred_deep_link,
            KEY_CACHED_RESULT: (
                state.cached_result.model_dump(mode="json") if state.cached_result else None
            ),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    async def reset(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info("Check state reset")
