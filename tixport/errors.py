"""Exception types raised by the storefront API."""

from __future__ import annotations


class TixportError(Exception):
    """Base class for application specific errors."""


class ConfigurationError(TixportError):
    """Raised when required configuration is missing at startup."""


class InvalidUrlError(TixportError, ValueError):
    """Raised when a URL cannot be decomposed into host and path."""

    def __init__(self, url: object) -> None:
        super().__init__(f"Invalid URL: {url}")
        self.url = url


class UpstreamError(TixportError):
    """Raised when the ticketing provider returns an error or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
