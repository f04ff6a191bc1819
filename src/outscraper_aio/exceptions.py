"""
Exception hierarchy for the Outscraper client.

Every failure surfaced by the library derives from ``OutscraperError`` so callers
can catch the whole family with a single clause.
"""

from __future__ import annotations

from typing import Optional


class OutscraperError(Exception):
    """Base exception for all client errors."""

    pass


class ConfigurationError(OutscraperError):
    """Raised at construction time when credentials or settings are unusable."""

    pass


class TransportError(OutscraperError):
    """Raised when the request could not be completed or the body was not JSON."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class ApiError(OutscraperError):
    """Raised when the remote service reports a failure in the response envelope."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class TimeoutExceeded(OutscraperError):
    """
    Raised when a job is still pending after the configured wait budget.

    The job may still finish server-side; it stays retrievable through
    ``get_request_archive(request_id)`` until the remote retention period ends.
    """

    def __init__(self, request_id: str, attempts: int) -> None:
        super().__init__(f"Timeout exceeded while waiting for request {request_id} ({attempts} attempts)")
        self.request_id = request_id
        self.attempts = attempts


class Cancelled(OutscraperError):
    """Raised when polling is aborted through the caller's cancel event."""

    def __init__(self, request_id: str) -> None:
        super().__init__(f"Polling cancelled for request {request_id}")
        self.request_id = request_id
