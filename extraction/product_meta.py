"""
Live metadata for catalog entries and the price plausibility fallback.

A price below the plausibility floor is usually a unit price ("$1.33 /
ounce"). In that case the mobile variant of the item page is fetched once
and its price is used only when it passes the format gate and the floor.
"""

from __future__ import annotations

import logging
from typing import Protocol

from core.identity import mobile_item_url
from core.models import PageFacts, ProductMeta
from extraction.image import extract_image_url
from extraction.page_reader import build_page_facts
from extraction.price import extract_mobile_price, extract_price, is_below_floor, is_plausible_price_text
from extraction.reviews import extract_rating_and_reviews

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str | None) -> str | None: ...


def _plausible(price: str | None) -> str | None:
    if not is_plausible_price_text(price):
        return None
    return price.strip() if price else None


async def resolve_price(markup: str | None, item_url: str, fetcher: Fetcher | None) -> str | None:
    """Desktop price, with the mobile-variant fallback for sub-floor values."""
    price = _plausible(extract_price(markup))
    if price is None or not is_below_floor(price):
        return price

    mobile_url = mobile_item_url(item_url)
    if fetcher is None or mobile_url is None:
        logger.debug(f"Discarding sub-floor price {price}; no fallback available", extra={"url": item_url})
        return None

    mobile_markup = await fetcher.fetch(mobile_url)
    mobile_price = _plausible(extract_mobile_price(mobile_markup) or extract_price(mobile_markup))
    if mobile_price is not None and not is_below_floor(mobile_price):
        logger.debug(f"Mobile fallback replaced {price} with {mobile_price}", extra={"url": item_url})
        return mobile_price

    logger.warning(
        f"Mobile price fallback did not find main price (extracted={mobile_price})",
        extra={"url": item_url, "field": "price"},
    )
    return None


async def collect_page_facts(markup: str | None, url: str, fetcher: Fetcher | None = None) -> PageFacts:
    """Build page facts and fill in the price through the mobile fallback."""
    facts = build_page_facts(markup, url)
    if facts.is_empty or facts.price_text is not None:
        return facts

    price = await resolve_price(markup, url, fetcher)
    if price is None:
        return facts
    return facts.model_copy(update={"price_text": price})


class ProductMetaResolver:
    """Resolves rating, review count, price and image for catalog item pages."""

    def __init__(self, fetcher: Fetcher):
        self.fetcher = fetcher

    async def resolve_meta(self, product_url: str) -> ProductMeta:
        markup = await self.fetcher.fetch(product_url)
        if not markup:
            return ProductMeta()

        rating, review_count = extract_rating_and_reviews(markup)
        price = await resolve_price(markup, product_url, self.fetcher)
        return ProductMeta(rating=rating, review_count=review_count, price_text=price)

    async def resolve_image(self, product_url: str) -> str | None:
        markup = await self.fetcher.fetch(product_url)
        if not markup:
            return None
        image_url = extract_image_url(markup)
        if image_url is None:
            logger.warning("Image resolver found no image", extra={"url": product_url, "field": "image_url"})
        return image_url
