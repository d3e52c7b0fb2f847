"""Page signal extraction: noise detection and field strategy chains."""

from __future__ import annotations

from .image import extract_image_url
from .noise_guard import is_safe_to_extract
from .page_reader import build_page_facts
from .price import extract_mobile_price, extract_price, is_plausible_price_text
from .reviews import extract_rating_and_reviews

__all__ = [
    "build_page_facts",
    "extract_image_url",
    "extract_mobile_price",
    "extract_price",
    "extract_rating_and_reviews",
    "is_plausible_price_text",
    "is_safe_to_extract",
]
