"""Custom exception types for HubLights."""

from __future__ import annotations

from typing import Optional


class HubLightsError(Exception):
    """Base exception for all recoverable HubLights errors."""


class ConfigurationError(HubLightsError):
    """Raised when runtime settings or command-line values are missing or invalid."""


class NotFetchableError(HubLightsError):
    """Raised when a fetch is requested for a target with no derivable service URL."""


class FetchError(HubLightsError):
    """Base class for failures of a single status fetch."""


class TransportError(FetchError):
    """Raised when the request never produced an HTTP response (DNS, connect, timeout)."""


class HTTPStatusError(FetchError):
    """Raised when the service answered with a non-2xx status code."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(FetchError):
    """Raised when a response body does not match the check-suites payload shape."""

    def __init__(self, message: str, body: Optional[bytes] = None) -> None:
        super().__init__(message)
        self.body = body


class PersistenceDecodeError(HubLightsError):
    """Raised internally when persisted configuration text cannot be decoded."""
