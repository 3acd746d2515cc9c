"""Configuration for deep link resolution.

Constructed explicitly by the host, or from DYNALINKS_* environment variables
(a .env file is honored):

    DYNALINKS_CLIENT_API_KEY   required
    DYNALINKS_BASE_URL         default https://dynalinks.app/api/v1
    DYNALINKS_LOG_LEVEL        none|error|warning|info|debug (default error)
    DYNALINKS_ALLOW_EMULATOR   true|false
    DYNALINKS_PLATFORM         default android
    DYNALINKS_MAX_RETRIES      default 3
    DYNALINKS_REQUEST_TIMEOUT  seconds, default 10
    DYNALINKS_REFERRER_TIMEOUT seconds, default 5
    DYNALINKS_STATE_PATH       JSON state file; unset keeps state in memory
"""

import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from lib.attribution.device import DeviceInfo

DEFAULT_BASE_URL = "https://dynalinks.app/api/v1"


class LogLevel(str, Enum):
    NONE = "none"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


class DynalinksConfig(BaseModel):
    """Settings for one DynalinksContext."""

    client_api_key: str
    base_url: str = DEFAULT_BASE_URL
    log_level: LogLevel = LogLevel.ERROR
    allow_emulator: bool = False
    platform: str = "android"
    max_retries: int = Field(default=3, ge=1)
    request_timeout: float = Field(default=10.0, gt=0)
    referrer_timeout: float = Field(default=5.0, gt=0)
    state_path: Optional[str] = None
    device: DeviceInfo = Field(default_factory=DeviceInfo)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def _lowercase_level(cls, v):
        return v.lower() if isinstance(v, str) else v

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "DynalinksConfig":
        load_dotenv(env_file)

        values = {"client_api_key": os.getenv("DYNALINKS_CLIENT_API_KEY", "")}
        env_map = {
            "base_url": "DYNALINKS_BASE_URL",
            "log_level": "DYNALINKS_LOG_LEVEL",
            "platform": "DYNALINKS_PLATFORM",
            "max_retries": "DYNALINKS_MAX_RETRIES",
            "request_timeout": "DYNALINKS_REQUEST_TIMEOUT",
            "referrer_timeout": "DYNALINKS_REFERRER_TIMEOUT",
            "state_path": "DYNALINKS_STATE_PATH",
        }
        for field, var in env_map.items():
            value = os.getenv(var)
            if value:
                values[field] = value

        allow_emulator = os.getenv("DYNALINKS_ALLOW_EMULATOR", "")
        values["allow_emulator"] = allow_emulator.lower() in ("1", "true", "yes")

        return cls(**values)
