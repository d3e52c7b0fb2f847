from __future__ import annotations

import pytest

from core.identity import (
    extract_item_id,
    is_host_url,
    is_product_page,
    is_valid_image_url,
    is_valid_product_url,
    mobile_item_url,
)
from core.models import PageIdentity
from core.text import format_usd, normalize_text, parse_money


class TestItemId:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.amazon.com/Some-Coffee/dp/B07ABCDE12/ref=sr_1_1", "B07ABCDE12"),
            ("https://www.amazon.com/gp/product/b07abcde12?th=1", "B07ABCDE12"),
            ("https://www.amazon.com/gp/aw/d/B07ABCDE12?psc=1", "B07ABCDE12"),
            ("https://www.amazon.com/something?asin=B07ABCDE12&x=1", "B07ABCDE12"),
            ("https://www.amazon.com/s?k=coffee", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_item_id(self, url, expected):
        assert extract_item_id(url) == expected

    def test_mobile_item_url(self):
        assert mobile_item_url("https://www.amazon.com/dp/B07ABCDE12") == "https://www.amazon.com/gp/aw/d/B07ABCDE12?psc=1"
        assert mobile_item_url("https://www.amazon.com/") is None


class TestProductPage:
    def test_product_page(self):
        assert is_product_page("https://www.amazon.com/Lavazza/dp/B000SDKDM4") is True
        assert is_product_page("https://smile.amazon.com/gp/product/B000SDKDM4") is True
        assert is_product_page("https://www.amazon.com/sumatra-coffee/dp/B000SDKDM4") is True

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.amazon.com/",
            "https://www.amazon.com/s?k=espresso",
            "https://www.amazon.com/gp/cart/view.html",
            "https://www.example.com/dp/B000SDKDM4",
            "not a url",
        ],
    )
    def test_not_product_page(self, url):
        assert is_product_page(url) is False

    def test_host_url(self):
        assert is_host_url("https://www.amazon.com/dp/B000SDKDM4") is True
        assert is_host_url("ftp://www.amazon.com/dp/B000SDKDM4") is False
        assert is_host_url("https://amazon.com.evil.example/dp/B000SDKDM4") is False


class TestUrlAllowLists:
    def test_valid_product_url(self):
        assert is_valid_product_url("https://www.amazon.com/dp/B000SDKDM4") is True
        assert is_valid_product_url("https://www.amazon.com/Name/dp/B000SDKDM4/ref=x") is True
        assert is_valid_product_url("https://www.amazon.com/s?k=x") is False
        assert is_valid_product_url("https://shop.example.com/dp/B000SDKDM4") is False

    def test_valid_image_url(self):
        assert is_valid_image_url("https://m.media-amazon.com/images/I/81abc.jpg") is True
        assert is_valid_image_url("http://m.media-amazon.com/images/I/81abc.jpg") is False
        assert is_valid_image_url("https://images.example.com/81abc.jpg") is False
        assert is_valid_image_url("https://") is False
        assert is_valid_image_url("") is False


class TestPageIdentity:
    def test_from_url(self):
        identity = PageIdentity.from_url("https://www.amazon.com/dp/B000SDKDM4")
        assert identity.item_id == "B000SDKDM4"

    def test_same_page_requires_equal_url(self):
        a = PageIdentity.from_url("https://www.amazon.com/dp/B000SDKDM4")
        b = PageIdentity.from_url("https://www.amazon.com/dp/B000SDKDM4?th=1")
        assert a.same_page(PageIdentity.from_url("https://www.amazon.com/dp/B000SDKDM4")) is True
        assert a.same_page(b) is False
        assert a.same_page(None) is False


class TestText:
    def test_normalize_text(self):
        assert normalize_text("  Nature’s   BEST\n Coffee ") == "nature's best coffee"
        assert normalize_text(None) == ""

    def test_parse_money(self):
        assert parse_money("$1,234.56") == 1234.56
        assert parse_money("$ 15.99") == 15.99
        assert parse_money("free") is None

    @pytest.mark.parametrize(
        "value,expected",
        [(26.99, "$26.99"), ("14.5", "$14.50"), (0, "$0.00"), (None, ""), ("", ""), ("abc", ""), (float("nan"), "")],
    )
    def test_format_usd(self, value, expected):
        assert format_usd(value) == expected
