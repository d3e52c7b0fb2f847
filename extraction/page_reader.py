"""
Builds the PageFacts record for one page identity.

Visible text (title, breadcrumbs, feature bullets, description) is read from
the DOM with BeautifulSoup; price, rating, reviews and image come from the
markup pattern chains.
"""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup

from core.identity import extract_item_id
from core.models import PageFacts
from core.text import normalize_text
from extraction.image import extract_image_url
from extraction.noise_guard import find_noise_marker
from extraction.price import extract_price, is_below_floor, is_plausible_price_text
from extraction.reviews import extract_rating_and_reviews
from matching.domains import detect_page_category

logger = logging.getLogger(__name__)

TITLE_SELECTORS = ("#productTitle", "h1#title", "h1")
BREADCRUMB_SELECTORS = (
    "#wayfinding-breadcrumbs_feature_div",
    "#wayfinding-breadcrumbs_container",
    ".a-breadcrumb",
)
FEATURE_SELECTORS = ("#feature-bullets",)
DESCRIPTION_SELECTORS = ("#productDescription",)

DOCUMENT_TITLE_SUFFIX_RE = re.compile(r"\s*:\s*Amazon\.com\s*$", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")


def _text_from(soup: BeautifulSoup, selectors: tuple[str, ...]) -> str:
    """Text of the first selector that yields non-empty text."""
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = WHITESPACE_RE.sub(" ", element.get_text(" ", strip=True)).strip()
        if text:
            return text
    return ""


def _document_title(soup: BeautifulSoup) -> str:
    if soup.title is None or not soup.title.string:
        return ""
    return DOCUMENT_TITLE_SUFFIX_RE.sub("", soup.title.string).strip()


def select_page_price(markup: str) -> str | None:
    """Desktop price that passes the format gate and the plausibility floor."""
    price = extract_price(markup)
    if not is_plausible_price_text(price):
        return None
    if is_below_floor(price):
        logger.debug(f"Discarding likely unit price {price}")
        return None
    return price.strip() if price else None


def build_page_facts(markup: str | None, url: str = "") -> PageFacts:
    """Extract the facts for one page; never raises.

    Interstitial pages and empty markup produce an empty record, which the
    matcher treats as unclassified.
    """
    item_id = extract_item_id(url)
    if not markup:
        return PageFacts(url=url, item_id=item_id)

    marker = find_noise_marker(markup)
    if marker is not None:
        logger.info(f"Interstitial page detected ('{marker}'); no facts extracted", extra={"url": url, "item_id": item_id})
        return PageFacts(url=url, item_id=item_id)

    soup = BeautifulSoup(markup, "html.parser")

    title = _text_from(soup, TITLE_SELECTORS) or _document_title(soup)
    breadcrumb_text = _text_from(soup, BREADCRUMB_SELECTORS)
    feature_text = _text_from(soup, FEATURE_SELECTORS)
    description_text = _text_from(soup, DESCRIPTION_SELECTORS)

    # Breadcrumbs stay out of the keyword haystack
    combined = normalize_text(f"{title}\n{feature_text}\n{description_text}")

    rating, review_count = extract_rating_and_reviews(markup)

    facts = PageFacts(
        url=url,
        item_id=item_id,
        title=title,
        breadcrumb_text=breadcrumb_text,
        feature_text=feature_text,
        description_text=description_text,
        combined_search_text=combined,
        category=detect_page_category(title, breadcrumb_text),
        price_text=select_page_price(markup),
        rating=rating,
        review_count=review_count,
        image_url=extract_image_url(markup),
    )
    logger.debug(
        f"Page facts: title={title[:80]!r} category={facts.category} price={facts.price_text}",
        extra={"url": url, "item_id": item_id},
    )
    return facts
