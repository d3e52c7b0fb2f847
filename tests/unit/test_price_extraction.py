"""Tests for the price strategy chain and the plausibility gate."""

from __future__ import annotations

import pytest

from extraction.price import (
    extract_mobile_price,
    extract_price,
    is_below_floor,
    is_plausible_price_text,
    price_from_core_display,
    price_from_json_block,
    price_from_legacy_blocks,
    price_from_offscreen_scan,
)

SPACER = "<div class='spacer'></div>" * 12


class TestPlausibility:
    @pytest.mark.parametrize("text", ["$15.99", "$1,234.56", "$5.00", " $26.99 ", "$1,234,567.00"])
    def test_accepts_dollar_amount_with_cents(self, text):
        assert is_plausible_price_text(text) is True

    @pytest.mark.parametrize("text", ["$10", "$1,234", "10.00", "$15.9", "$15.999", "USD 15.99", "", None])
    def test_rejects_everything_else(self, text):
        assert is_plausible_price_text(text) is False

    def test_below_floor(self):
        assert is_below_floor("$1.33") is True
        assert is_below_floor("$5.00") is False
        assert is_below_floor("$0.00") is True
        assert is_below_floor(None) is False


class TestJsonBlock:
    def test_unit_price_skipped_for_main_price(self):
        markup = (
            '<script>{"priceToPay": {"displayPrice": "$1.33", "unit": "/ounce"}, '
            '"buyingOptions": [{"displayPrice": "$15.99", "type": "NEW"}]}</script>'
        )
        assert price_from_json_block(markup) == "$15.99"
        assert extract_price(markup) == "$15.99"

    def test_coupon_context_is_skipped(self):
        markup = (
            '{"priceToPay": {"couponBadge": "Save with coupon", "displayPrice": "$20.00"}'
            + " " * 400
            + ', "other": {"displayPrice": "$24.99"}}'
        )
        assert price_from_json_block(markup) == "$24.99"

    def test_prefers_value_with_cents(self):
        markup = '{"priceToPay": {"displayPrice": "$20"}, "b": {"displayPrice": "$19.99"}}'
        assert price_from_json_block(markup) == "$19.99"

    def test_whole_dollar_used_when_only_candidate(self):
        markup = '{"apexPriceToPay": {"displayPrice": "$20"}}'
        assert price_from_json_block(markup) == "$20"

    def test_no_anchor(self):
        assert price_from_json_block('{"displayPrice": "$19.99"}') is None


class TestCoreDisplay:
    def test_price_to_pay_offscreen(self):
        markup = (
            '<div id="corePriceDisplay_desktop_feature_div">'
            '<span class="a-price priceToPay"><span class="a-offscreen">$26.99</span></span>'
            "</div>"
        )
        assert price_from_core_display(markup) == "$26.99"

    def test_apex_region(self):
        markup = (
            '<div id="apexPriceToPay" class="a-section">'
            '<span class="a-price"><span class="a-offscreen">$31.50</span></span></div>'
        )
        assert price_from_core_display(markup) == "$31.50"

    def test_non_dollar_value_ignored(self):
        markup = '<span class="priceToPay"><span class="a-offscreen">See price in cart</span></span>'
        assert price_from_core_display(markup) is None


class TestOffscreenScan:
    def test_largest_remaining_value_wins(self):
        markup = (
            '<div id="corePriceDisplay_desktop_feature_div">'
            '<span class="a-price"><span class="a-offscreen">$12.99</span></span>'
            + SPACER
            + '<span class="a-price"><span class="a-offscreen">$8.49</span></span>'
            + SPACER
            + '<span class="a-price a-text-price" data-a-strike="true"><span class="a-offscreen">$39.99</span></span>'
            "</div>"
        )
        assert price_from_offscreen_scan(markup) == "$12.99"

    def test_unit_price_equal_to_candidate_is_excluded(self):
        markup = (
            '<span class="a-price"><span class="a-offscreen">$0.54</span></span>'
            "<span>($0.54/ounce)</span>"
        )
        assert price_from_offscreen_scan(markup) is None

    def test_list_price_context_excluded(self):
        markup = '<span>List Price: <span class="a-price"><span class="a-offscreen">$49.99</span></span></span>'
        assert price_from_offscreen_scan(markup) is None


class TestLegacyBlocks:
    def test_priceblock_id(self):
        assert price_from_legacy_blocks('<span id="priceblock_ourprice">$45.00</span>') == "$45.00"

    def test_dealprice_id(self):
        assert price_from_legacy_blocks("<span id='priceblock_dealprice'>$9.99</span>") == "$9.99"

    def test_whole_and_fraction_reconstruction(self):
        markup = (
            '<span class="a-price-whole">1,234<span class="a-price-decimal">.</span></span>'
            '<span class="a-price-fraction">56</span>'
        )
        assert price_from_legacy_blocks(markup) == "$1234.56"


class TestExtractPrice:
    def test_noise_page_returns_none(self):
        markup = '<h4>Type the characters you see in this image</h4>{"priceToPay": {"displayPrice": "$15.99"}}'
        assert extract_price(markup) is None

    def test_empty_markup(self):
        assert extract_price("") is None
        assert extract_price(None) is None

    def test_chain_order_prefers_json_block(self):
        markup = (
            '{"priceToPay": {"displayPrice": "$21.99"}}'
            '<span id="priceblock_ourprice">$45.00</span>'
        )
        assert extract_price(markup) == "$21.99"

    def test_no_price_anywhere(self):
        assert extract_price("<html><body>Currently unavailable.</body></html>") is None


class TestMobilePrice:
    def test_buy_box_price(self):
        assert extract_mobile_price('<span id="newBuyBoxPrice">$22.49</span>') == "$22.49"

    def test_scan_skips_coupon_context(self):
        markup = "<p>Clip coupon: save $6.00</p>" + SPACER * 2 + "<span>$17.99</span>"
        assert extract_mobile_price(markup) == "$17.99"

    def test_scan_skips_amount_off_but_not_words_containing_off(self):
        markup = "<p>$10.00 off your order</p>" + SPACER * 2 + "<p>$12.00 for Coffee</p>"
        assert extract_mobile_price(markup) == "$12.00"

    def test_scan_skips_values_below_floor(self):
        assert extract_mobile_price("<span>$1.33</span>") is None

    def test_noise_page(self):
        assert extract_mobile_price("<title>Robot Check</title><span>$17.99</span>") is None
