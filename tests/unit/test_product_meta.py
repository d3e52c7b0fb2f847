"""Tests for the secondary fetcher, the mobile price fallback and catalog metadata."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from core.models import ProductMeta
from extraction.fetcher import PageFetcher
from extraction.product_meta import ProductMetaResolver, collect_page_facts, resolve_price
from tests.factories import make_product_page

URL = "https://www.amazon.com/Lavazza-Espresso/dp/B000SDKDM4"
MOBILE_URL = "https://www.amazon.com/gp/aw/d/B000SDKDM4?psc=1"
PRICE_TO_PAY = '<span class="a-price priceToPay"><span class="a-offscreen">{}</span></span>'


def _fetcher(markup=None) -> MagicMock:
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=markup)
    return fetcher


def _mobile_page(price: str) -> str:
    return f'<html><body><span id="priceblock_ourprice">{price}</span></body></html>'


class TestResolvePrice:
    @pytest.mark.asyncio
    async def test_price_above_floor_needs_no_fetch(self):
        fetcher = _fetcher()
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$21.99"))

        assert await resolve_price(markup, URL, fetcher) == "$21.99"
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sub_floor_price_uses_mobile_variant(self):
        fetcher = _fetcher(_mobile_page("$15.99"))
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$1.33"))

        assert await resolve_price(markup, URL, fetcher) == "$15.99"
        fetcher.fetch.assert_awaited_once_with(MOBILE_URL)

    @pytest.mark.asyncio
    async def test_mobile_price_below_floor_is_rejected(self):
        fetcher = _fetcher(_mobile_page("$2.49"))
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$1.33"))

        assert await resolve_price(markup, URL, fetcher) is None

    @pytest.mark.asyncio
    async def test_failed_mobile_fetch(self):
        fetcher = _fetcher(None)
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$1.33"))

        assert await resolve_price(markup, URL, fetcher) is None
        fetcher.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_implausible_desktop_price_skips_fallback(self):
        fetcher = _fetcher(_mobile_page("$15.99"))
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$19"))

        assert await resolve_price(markup, URL, fetcher) is None
        fetcher.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_fetcher(self):
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$1.33"))
        assert await resolve_price(markup, URL, None) is None


class TestCollectPageFacts:
    @pytest.mark.asyncio
    async def test_fills_price_from_fallback(self):
        fetcher = _fetcher(_mobile_page("$15.99"))
        markup = make_product_page(price_html=PRICE_TO_PAY.format("$1.33"))

        facts = await collect_page_facts(markup, URL, fetcher)

        assert facts.price_text == "$15.99"
        assert facts.title.startswith("Lavazza")

    @pytest.mark.asyncio
    async def test_empty_facts_skip_fallback(self):
        fetcher = _fetcher(_mobile_page("$15.99"))

        facts = await collect_page_facts("<p>Robot Check</p>", URL, fetcher)

        assert facts.is_empty is True
        fetcher.fetch.assert_not_awaited()


class TestProductMetaResolver:
    @pytest.mark.asyncio
    async def test_resolve_meta(self):
        resolver = ProductMetaResolver(_fetcher(make_product_page(price_html=PRICE_TO_PAY.format("$21.99"))))

        meta = await resolver.resolve_meta("https://www.amazon.com/dp/B0COF00001")

        assert meta == ProductMeta(rating=4.6, review_count=12345, price_text="$21.99")

    @pytest.mark.asyncio
    async def test_resolve_meta_fetch_failure(self):
        resolver = ProductMetaResolver(_fetcher(None))
        meta = await resolver.resolve_meta("https://www.amazon.com/dp/B0COF00001")
        assert meta.to_dict() == {"rating": None, "review_count": None, "price_text": None}

    @pytest.mark.asyncio
    async def test_resolve_image(self):
        resolver = ProductMetaResolver(_fetcher(make_product_page()))
        image = await resolver.resolve_image("https://www.amazon.com/dp/B0COF00001")
        assert image == "https://m.media-amazon.com/images/I/81main._SL1500_.jpg"

    @pytest.mark.asyncio
    async def test_resolve_image_without_image(self):
        resolver = ProductMetaResolver(_fetcher("<html><body><h1>Plain</h1></body></html>"))
        assert await resolver.resolve_image("https://www.amazon.com/dp/B0COF00001") is None


class TestPageFetcher:
    def setup_method(self):
        self.requests: list[httpx.Request] = []

    def _fetcher(self, handler, **kwargs) -> PageFetcher:
        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        return PageFetcher(transport=httpx.MockTransport(recording), **kwargs)

    @pytest.mark.asyncio
    async def test_success(self):
        fetcher = self._fetcher(lambda request: httpx.Response(200, text="<html>ok</html>"))

        assert await fetcher.fetch(URL) == "<html>ok</html>"
        assert self.requests[0].headers["Accept-Language"].startswith("en-US")

    @pytest.mark.asyncio
    async def test_non_success_status(self):
        fetcher = self._fetcher(lambda request: httpx.Response(404, text="missing"))
        assert await fetcher.fetch(URL) is None

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert await self._fetcher(handler).fetch(URL) is None

    @pytest.mark.asyncio
    async def test_refuses_non_host_url(self):
        fetcher = self._fetcher(lambda request: httpx.Response(200, text="x"))

        assert await fetcher.fetch("https://www.example.com/dp/B000SDKDM4") is None
        assert await fetcher.fetch(None) is None
        assert self.requests == []

    @pytest.mark.asyncio
    async def test_sends_session_cookies(self):
        fetcher = self._fetcher(lambda request: httpx.Response(200, text="ok"), cookies={"session-id": "abc"})

        await fetcher.fetch(URL)

        assert "session-id=abc" in self.requests[0].headers["Cookie"]

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request):
            if request.url.path.startswith("/gp/aw/d/"):
                return httpx.Response(301, headers={"Location": URL})
            return httpx.Response(200, text="desktop")

        assert await self._fetcher(handler).fetch(MOBILE_URL) == "desktop"
        assert len(self.requests) == 2
