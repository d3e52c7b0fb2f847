"""
Secondary page fetcher.

One GET per call, no retries. Any failure (non-host URL, network error,
non-2xx status) is logged and returned as None so callers treat it as an
unknown field.
"""

from __future__ import annotations

import logging
import time

import httpx

from core.exceptions import NetworkFailure
from core.identity import is_host_url

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
}


class PageFetcher:
    """Credentialed single-attempt fetch of host item pages."""

    def __init__(
        self,
        cookies: dict[str, str] | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cookies = dict(cookies or {})
        self.timeout = timeout
        self._transport = transport

    async def _get(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            cookies=self.cookies,
            headers=DEFAULT_HEADERS,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(url)
            except httpx.HTTPError as e:
                raise NetworkFailure(url, reason=f"{type(e).__name__} - {str(e)[:200]}") from e

        if not response.is_success:
            raise NetworkFailure(url, status_code=response.status_code)
        return response.text

    async def fetch(self, url: str | None) -> str | None:
        """Return the page markup, or None on any failure."""
        if not url or not is_host_url(url):
            logger.debug(f"[Fetcher] Refusing non-host URL: {url}")
            return None

        start = time.monotonic()
        try:
            markup = await self._get(url)
        except NetworkFailure as e:
            logger.warning(f"[Fetcher] {e}", extra={"url": url})
            return None

        duration_ms = int((time.monotonic() - start) * 1000)
        logger.debug(f"[Fetcher] Fetched {len(markup)} chars", extra={"url": url, "duration_ms": duration_ms})
        return markup
