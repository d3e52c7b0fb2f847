"""
Price extraction strategy chain.

Product pages carry several prices at once: the price to pay, unit prices
("$1.33 / ounce"), list/strikethrough prices and coupon amounts. Each
strategy below is a pure ``(markup) -> price text | None`` function; the
chain returns the first one that produces a value.

Strategies, in order:
1. JSON "priceToPay" block: embedded displayPrice values near the anchor
2. Core price display region: priceToPay / apexPriceToPay offscreen values
3. Offscreen scan: all offscreen prices minus unit and list prices, largest wins
4. Legacy priceblock ids, then whole + fraction reconstruction
"""

from __future__ import annotations

import logging
import re

from core.text import parse_money
from extraction.chain import first_match
from extraction.noise_guard import is_safe_to_extract

logger = logging.getLogger(__name__)

# Below this a value is presumed to be a unit or secondary price
PRICE_FLOOR = 5.0

JSON_ANCHORS = ('"priceToPay"', '"apexPriceToPay"')
JSON_WINDOW = 15000

COUPON_WORDS = ("coupon", "save", "savings", "discount", "promo", "promotion")
UNIT_MARKERS = ("/ounce", "/ oz", "/oz", "per ounce")
LIST_PRICE_MARKERS = ("list price", "was:", "a-text-price", "price was")

PLAUSIBLE_PRICE_RE = re.compile(r"^\$\s*\d+(?:,\d{3})*\.\d{2}$")
CENTS_RE = re.compile(r"\.[0-9]{2}$")
DOLLAR_RE = re.compile(r"^\$\s*\d")

DISPLAY_PRICE_RE = re.compile(r'"displayPrice"\s*:\s*"(\$\s*\d[\d,]*\.?\d{0,2})"', re.IGNORECASE)

_OFFSCREEN = r"class=[\"']a-offscreen[\"'][^>]*>\s*([^<\s][^<]{0,20})\s*<"
OFFSCREEN_RE = re.compile(_OFFSCREEN, re.IGNORECASE)
CORE_PRICE_SCOPE_RE = re.compile(r"id=[\"']corePriceDisplay_desktop_feature_div[\"'][\s\S]{0,5000}", re.IGNORECASE)
PRICE_TO_PAY_RE = re.compile(r"priceToPay[\s\S]{0,1200}?" + _OFFSCREEN, re.IGNORECASE)
APEX_PRICE_RE = re.compile(r"apexPriceToPay[\s\S]{0,2000}?" + _OFFSCREEN, re.IGNORECASE)
APEX_PRICE_ID_RE = re.compile(r"id=[\"']apexPriceToPay[\"'][\s\S]{0,3500}?" + _OFFSCREEN, re.IGNORECASE)
UNIT_PRICE_RE = re.compile(r"\(\s*(\$\s*\d[\d,]*\.?\d{0,2})\s*/\s*ounce")

PRICEBLOCK_RE = re.compile(
    r"id=[\"']priceblock_(?:ourprice|dealprice|saleprice)[\"'][^>]*>\s*([^<\s][^<]{0,20})\s*<",
    re.IGNORECASE,
)
NEW_BUY_BOX_RE = re.compile(r"id=[\"']newBuyBoxPrice[\"'][^>]*>\s*([^<\s][^<]{0,20})\s*<", re.IGNORECASE)
WHOLE_FRACTION_RE = re.compile(
    r"class=[\"']a-price-whole[\"'][^>]*>\s*([0-9][0-9,]*)\.?\s*(?:<span[^>]*>\.</span>)?\s*</span>"
    r"[\s\S]{0,120}?class=[\"']a-price-fraction[\"'][^>]*>\s*([0-9]{2})\s*</span>",
    re.IGNORECASE,
)
LOOSE_DOLLAR_RE = re.compile(r"\$\s*\d[\d,]*\.?\d{0,2}")
OFF_WORD_RE = re.compile(r"\boff\b")


def is_plausible_price_text(text: str | None) -> bool:
    """Last-mile gate: '$' + digits (optional thousands separators) + exactly two decimals."""
    if not isinstance(text, str):
        return False
    return bool(PLAUSIBLE_PRICE_RE.match(text.strip()))


def is_below_floor(text: str | None) -> bool:
    value = parse_money(text)
    return value is not None and value < PRICE_FLOOR


def _price_scope(markup: str) -> str:
    match = CORE_PRICE_SCOPE_RE.search(markup)
    return match.group(0) if match else markup


def _dollar_capture(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if match and DOLLAR_RE.match(match.group(1).strip()):
        return match.group(1).strip()
    return None


# =============================================================================
# STRATEGIES
# =============================================================================


def price_from_json_block(markup: str) -> str | None:
    for anchor in JSON_ANCHORS:
        idx = markup.find(anchor)
        if idx == -1:
            continue

        window = markup[idx : idx + JSON_WINDOW]
        candidates: list[str] = []
        for match in DISPLAY_PRICE_RE.finditer(window):
            text = match.group(1).strip()
            numeric = parse_money(text)
            if numeric is None or numeric < PRICE_FLOOR:
                continue

            context = window[max(0, match.start() - 160) : match.start() + 300].lower()
            if any(word in context for word in COUPON_WORDS):
                continue

            candidates.append(text)

        # Whole-dollar values are frequently coupon amounts
        with_cents = next((c for c in candidates if CENTS_RE.search(c)), None)
        if with_cents:
            return with_cents
        if candidates:
            return candidates[0]
    return None


def price_from_core_display(markup: str) -> str | None:
    scope = _price_scope(markup)
    return (
        _dollar_capture(PRICE_TO_PAY_RE, scope)
        or _dollar_capture(APEX_PRICE_RE, markup)
        or _dollar_capture(APEX_PRICE_ID_RE, markup)
    )


def price_from_offscreen_scan(markup: str) -> str | None:
    scope = _price_scope(markup)
    candidates: list[tuple[float, str]] = []

    for match in OFFSCREEN_RE.finditer(scope):
        text = match.group(1).strip()
        if not DOLLAR_RE.match(text):
            continue
        numeric = parse_money(text)
        if numeric is None:
            continue

        context = scope[max(0, match.start() - 80) : match.start() + 220].lower()

        if any(marker in context for marker in UNIT_MARKERS):
            unit = UNIT_PRICE_RE.search(context)
            if unit and re.sub(r"\s+", "", unit.group(1)) == re.sub(r"\s+", "", text):
                continue

        if any(marker in context for marker in LIST_PRICE_MARKERS):
            continue

        candidates.append((numeric, text))

    if not candidates:
        return None
    # Smaller values are more likely secondary or unit prices
    return max(candidates, key=lambda c: c[0])[1]


def price_from_legacy_blocks(markup: str) -> str | None:
    scope = _price_scope(markup)
    match = PRICEBLOCK_RE.search(scope)
    if match:
        return match.group(1).strip()

    match = WHOLE_FRACTION_RE.search(scope)
    if match:
        whole = match.group(1).replace(",", "")
        return f"${whole}.{match.group(2)}"
    return None


PRICE_STRATEGIES = [
    price_from_json_block,
    price_from_core_display,
    price_from_offscreen_scan,
    price_from_legacy_blocks,
]


def extract_price(markup: str | None) -> str | None:
    """Recover the price to pay from desktop item markup."""
    if not markup or not is_safe_to_extract(markup):
        return None
    return first_match(PRICE_STRATEGIES, markup)


# =============================================================================
# MOBILE VARIANT
# =============================================================================


def mobile_price_from_blocks(markup: str) -> str | None:
    return _dollar_capture(PRICEBLOCK_RE, markup) or _dollar_capture(NEW_BUY_BOX_RE, markup)


def mobile_price_from_scan(markup: str) -> str | None:
    """First dollar amount at or above the floor outside coupon and unit contexts."""
    for match in LOOSE_DOLLAR_RE.finditer(markup):
        text = match.group(0).strip()
        numeric = parse_money(text)
        if numeric is None or numeric < PRICE_FLOOR:
            continue

        context = markup[max(0, match.start() - 120) : match.start() + 240].lower()
        if any(word in context for word in ("coupon", "save ", "save$", "savings", "discount", "promo")):
            continue
        if OFF_WORD_RE.search(context):
            continue
        if any(marker in context for marker in UNIT_MARKERS):
            continue

        return text
    return None


MOBILE_PRICE_STRATEGIES = [mobile_price_from_blocks, mobile_price_from_scan]


def extract_mobile_price(markup: str | None) -> str | None:
    """Recover the price from the mobile item page variant."""
    if not markup or not is_safe_to_extract(markup):
        return None
    return first_match(MOBILE_PRICE_STRATEGIES, markup)
