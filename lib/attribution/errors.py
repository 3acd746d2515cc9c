"""
Error hierarchy for deep link attribution.

All errors inherit from DynalinksError and carry an ErrorKind tag, so callers
can either catch a specific subclass or branch on `err.kind`.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    NOT_CONFIGURED = "not_configured"
    INVALID_API_KEY = "invalid_api_key"
    EMULATOR = "emulator"
    INVALID_INTENT = "invalid_intent"
    NETWORK_ERROR = "network_error"
    INVALID_RESPONSE = "invalid_response"
    SERVER_ERROR = "server_error"
    NO_MATCH = "no_match"
    INSTALL_REFERRER_UNAVAILABLE = "install_referrer_unavailable"
    INSTALL_REFERRER_TIMEOUT = "install_referrer_timeout"


class DynalinksError(Exception):
    """Base exception for all deep link resolution errors."""

    kind: ErrorKind
    default_message: str = "Deep link resolution failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotConfigured(DynalinksError):
    """Resolution was attempted before the context was configured."""

    kind = ErrorKind.NOT_CONFIGURED
    default_message = "Dynalinks not configured. Call configure() first."


class InvalidAPIKey(DynalinksError):
    """Client API key is missing or malformed."""

    kind = ErrorKind.INVALID_API_KEY

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class Emulator(DynalinksError):
    kind = ErrorKind.EMULATOR
    default_message = "Deferred deep linking not available on emulator."


class InvalidIntent(DynalinksError):
    """Incoming link does not contain valid deep link data."""

    kind = ErrorKind.INVALID_INTENT
    default_message = "Intent does not contain valid deep link data."


class NetworkError(DynalinksError):
    """Transport-level failure (connect, read, timeout)."""

    kind = ErrorKind.NETWORK_ERROR

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        detail = str(cause) if cause is not None and str(cause) else "unknown error"
        super().__init__(f"Network request failed: {detail}")
        self.__cause__ = cause


class InvalidResponse(DynalinksError):
    kind = ErrorKind.INVALID_RESPONSE
    default_message = "Invalid response from server."


class ServerError(DynalinksError):
    """Server returned a non-2xx status code."""

    kind = ErrorKind.SERVER_ERROR

    def __init__(self, status_code: int, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        if body:
            message = f"Server error ({status_code}): {body}"
        else:
            message = f"Server error: {status_code}"
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return 500 <= self.status_code <= 599


class NoMatch(DynalinksError):
    kind = ErrorKind.NO_MATCH
    default_message = "No matching deferred deep link found."


class InstallReferrerUnavailable(DynalinksError):
    kind = ErrorKind.INSTALL_REFERRER_UNAVAILABLE
    default_message = "Install Referrer API is not available."


class InstallReferrerTimeout(DynalinksError):
    kind = ErrorKind.INSTALL_REFERRER_TIMEOUT
    default_message = "Install Referrer connection timed out."
