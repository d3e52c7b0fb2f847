"""
HTTP client for the remote catalog table.

Talks to a PostgREST-style endpoint with the public anon key. The client
performs a single request per load; fallback to the static catalog is the
caller's decision (see core.catalog.CatalogRepository).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx

from core.text import format_usd

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "products2"

SELECT_COLUMNS = [
    "id",
    "name",
    "brand",
    "category",
    "price",
    "rating",
    "review_count",
    "image_url",
    "product_url",
    "description",
    "badges",
    "amazon_keywords",
    "amazon_categories",
]


class AuthenticationError(Exception):
    """Raised when the catalog API key is missing or rejected."""

    pass


class CatalogFetchError(Exception):
    """Raised when the catalog table cannot be read."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_text_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def row_to_record(row: dict[str, Any]) -> dict[str, Any]:
    """Map a snake_case table row onto the catalog document shape."""
    review_count = _as_number(row.get("review_count"))
    return {
        "id": str(row.get("id") or "").strip(),
        "name": str(row.get("name") or "").strip(),
        "brand": str(row.get("brand") or "").strip(),
        "category": str(row.get("category") or "").strip(),
        "price": format_usd(row.get("price")),
        "rating": _as_number(row.get("rating")),
        "reviewCount": int(review_count) if review_count >= 0 else 0,
        "imageUrl": str(row.get("image_url") or "").strip(),
        "productUrl": str(row.get("product_url") or "").strip(),
        "description": str(row.get("description") or ""),
        "badges": _as_text_list(row.get("badges")),
        "amazonKeywords": _as_text_list(row.get("amazon_keywords")),
        "amazonCategories": _as_text_list(row.get("amazon_categories")),
    }


class CatalogAPIClient:
    """
    Async client for the remote product table.

    Handles:
    - anon key authentication (``apikey`` + bearer headers)
    - the "load all active products" query
    - mapping table rows onto the catalog document shape
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        table: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = (api_url if api_url is not None else os.environ.get("CATALOG_API_URL", "")).strip()
        self.api_key = (api_key if api_key is not None else os.environ.get("CATALOG_API_KEY", "")).strip()
        self.table = table or os.environ.get("CATALOG_TABLE", DEFAULT_TABLE)
        self.timeout = timeout
        self._transport = transport

        if not self.api_url:
            logger.debug("CATALOG_API_URL not configured")
        if not self.api_key:
            logger.debug("CATALOG_API_KEY not configured")

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.api_url.rstrip('/')}/rest/v1/{self.table}"

    def _get_headers(self) -> dict[str, str]:
        """Get headers for authenticated requests."""
        if not self.api_key:
            raise AuthenticationError("CATALOG_API_KEY not configured")

        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def fetch_active_products(self) -> list[dict[str, Any]]:
        """
        Fetch every active product row, mapped to the catalog document shape.

        Raises:
            AuthenticationError: key missing or rejected
            CatalogFetchError: network failure or non-success status
        """
        if not self.api_url:
            raise CatalogFetchError("CATALOG_API_URL not configured")

        headers = self._get_headers()
        params = {"select": ",".join(SELECT_COLUMNS), "is_active": "eq.true"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.endpoint, params=params, headers=headers)
        except (httpx.NetworkError, httpx.TimeoutException) as e:
            raise CatalogFetchError(f"Catalog request failed: {type(e).__name__} - {str(e)[:200]}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(f"Catalog API rejected key: {response.status_code}")
        if response.status_code >= 400:
            raise CatalogFetchError(
                f"Catalog request failed: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            rows = response.json()
        except ValueError as e:
            raise CatalogFetchError(f"Catalog response was not JSON: {e}") from e

        if not isinstance(rows, list):
            logger.warning(f"[Catalog API] Unexpected response shape: {type(rows).__name__}")
            return []

        logger.debug(f"[Catalog API] Received {len(rows)} rows from {self.table}")
        return [row_to_record(row) for row in rows if isinstance(row, dict)]
