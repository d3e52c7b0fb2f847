"""Tests for building PageFacts from product page markup."""

from __future__ import annotations

import pytest

from extraction.page_reader import build_page_facts, select_page_price
from tests.factories import make_product_page

URL = "https://www.amazon.com/Lavazza-Espresso/dp/B000SDKDM4"
PRICE_TO_PAY = '<span class="a-price priceToPay"><span class="a-offscreen">{}</span></span>'


class TestBuildPageFacts:
    def setup_method(self):
        self.facts = build_page_facts(make_product_page(price_html=PRICE_TO_PAY.format("$21.99")), URL)

    def test_visible_text(self):
        assert self.facts.title == "Lavazza Espresso Italiano Whole Bean Coffee, 2.2 lb"
        assert self.facts.breadcrumb_text == "Grocery & Gourmet Food › Coffee › Whole Coffee Beans"
        assert "medium roast espresso blend" in self.facts.combined_search_text
        assert "premium arabica beans" in self.facts.combined_search_text

    def test_breadcrumbs_stay_out_of_search_text(self):
        assert "gourmet" not in self.facts.combined_search_text

    def test_identity_and_category(self):
        assert self.facts.item_id == "B000SDKDM4"
        assert self.facts.url == URL
        assert self.facts.category == "coffee"

    def test_numeric_fields(self):
        assert self.facts.price_text == "$21.99"
        assert self.facts.rating == 4.6
        assert self.facts.review_count == 12345
        assert self.facts.image_url == "https://m.media-amazon.com/images/I/81main._SL1500_.jpg"

    def test_not_empty(self):
        assert self.facts.is_empty is False


class TestPageFactsEdgeCases:
    def test_interstitial_page_gives_empty_facts(self):
        markup = make_product_page(extra="<p>Enter the characters you see below</p>")

        facts = build_page_facts(markup, URL)

        assert facts.is_empty is True
        assert facts.item_id == "B000SDKDM4"
        assert facts.price_text is None
        assert facts.category == "unknown"

    def test_empty_markup(self):
        facts = build_page_facts("", URL)
        assert facts.is_empty is True
        assert facts.url == URL

    def test_document_title_fallback(self):
        markup = "<html><head><title>Dark Roast Coffee : Amazon.com</title></head><body></body></html>"
        assert build_page_facts(markup, URL).title == "Dark Roast Coffee"

    def test_plain_h1_fallback(self):
        markup = "<html><body><h1>  Lavender \n Soy   Candle </h1></body></html>"
        facts = build_page_facts(markup, URL)
        assert facts.title == "Lavender Soy Candle"
        assert facts.category == "candles"

    @pytest.mark.parametrize("price", ["$1.33", "$0.00"])
    def test_sub_floor_price_is_dropped(self, price):
        facts = build_page_facts(make_product_page(price_html=PRICE_TO_PAY.format(price)), URL)
        assert facts.price_text is None

    def test_missing_price(self):
        assert build_page_facts(make_product_page(), URL).price_text is None


class TestSelectPagePrice:
    def test_accepts_plausible_price(self):
        assert select_page_price(make_product_page(price_html=PRICE_TO_PAY.format("$1,049.00"))) == "$1,049.00"

    def test_rejects_whole_dollar_text(self):
        assert select_page_price(make_product_page(price_html=PRICE_TO_PAY.format("$19"))) is None
