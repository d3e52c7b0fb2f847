"""
Exception types for catalog loading and page extraction.

Extraction failures never propagate to callers: an extractor that finds
nothing returns None. The classes below cover the failures that do reach
calling code (catalog loading) plus the markers used in logs for the
recoverable outcomes.
"""

from __future__ import annotations

from typing import Any


class MalformedCatalogRowError(Exception):
    """Raised when a catalog row fails validation in strict mode."""

    def __init__(
        self,
        message: str,
        row_index: int | None = None,
        source: str | None = None,
        validation_errors: list[dict[str, Any]] | None = None,
    ):
        self.row_index = row_index
        self.source = source
        self.validation_errors = validation_errors or []
        if row_index is not None:
            message = f"products[{row_index}]: {message}"
        super().__init__(message)


class CatalogLoadError(Exception):
    """Raised when no catalog source produced a usable product list."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        original_error: Exception | None = None,
    ):
        self.source = source
        self.original_error = original_error
        super().__init__(message)


class NetworkFailure(Exception):
    """A secondary fetch failed or returned a non-success status.

    Raised only inside the fetcher and converted to None before it leaves.
    """

    def __init__(self, url: str, status_code: int | None = None, reason: str | None = None):
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f"status {status_code}" if status_code is not None else (reason or "request failed")
        super().__init__(f"Fetch failed for {url}: {detail}")


class StaleResult(Exception):
    """An async result finished after the page identity had already changed."""

    def __init__(self, requested_url: str, current_url: str):
        self.requested_url = requested_url
        self.current_url = current_url
        super().__init__(f"Result for {requested_url} discarded; page is now {current_url}")
