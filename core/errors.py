"""
Error kinds raised along the search path.

Every error carries the HTTP status the proxy answers with, so the Flask
error handler can render any of them as ``{"error": message}``.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base class for failures that abort a search."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, str]:
        return {"error": self.message}


class ConfigurationError(SearchError):
    """Provider credentials are absent."""

    status_code = 500


class QueryValidationError(SearchError, ValueError):
    """The request is missing a query or carries malformed parameters."""

    status_code = 400


class UpstreamError(SearchError):
    """The provider answered with a non-success status."""


class NetworkError(SearchError):
    """Transport-level failure while talking to the provider or the proxy."""

    status_code = 500


class ProxyError(SearchError):
    """The proxy endpoint answered with an error payload or non-OK status."""
