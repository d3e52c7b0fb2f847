from __future__ import annotations

import logging
import re

from extraction.noise_guard import is_safe_to_extract

logger = logging.getLogger(__name__)

REVIEW_SCOPE_RE = re.compile(r"id=[\"']averageCustomerReviews[\"'][\s\S]{0,2500}", re.IGNORECASE)
RATING_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)\s*out of\s*5\s*stars", re.IGNORECASE)
REVIEW_LABEL_RE = re.compile(
    r"id=[\"']acrCustomerReviewText[\"'][^>]*>\s*([0-9,]+)\s+(?:global\s+ratings|ratings|rating)\s*<",
    re.IGNORECASE,
)
REVIEW_FALLBACK_RE = re.compile(r"([0-9,]+)\s+(?:global\s+ratings|ratings|rating)\b", re.IGNORECASE)


def _review_scope(markup: str) -> str:
    """Canonical review summary region, else the whole page."""
    match = REVIEW_SCOPE_RE.search(markup)
    return match.group(0) if match else markup


def extract_rating(markup: str | None) -> float | None:
    if not markup or not is_safe_to_extract(markup):
        return None
    match = RATING_RE.search(_review_scope(markup))
    if not match:
        return None
    try:
        rating = float(match.group(1))
    except ValueError:
        return None
    return rating if 0 <= rating <= 5 else None


def _parse_count(raw: str) -> int | None:
    digits = raw.replace(",", "")
    return int(digits) if digits.isdigit() else None


def extract_review_count(markup: str | None) -> int | None:
    if not markup or not is_safe_to_extract(markup):
        return None
    scope = _review_scope(markup)
    for pattern in (REVIEW_LABEL_RE, REVIEW_FALLBACK_RE):
        match = pattern.search(scope)
        if match:
            count = _parse_count(match.group(1))
            if count is not None:
                return count
    return None


def extract_rating_and_reviews(markup: str | None) -> tuple[float | None, int | None]:
    """Rating and review count; either may be None independently."""
    return extract_rating(markup), extract_review_count(markup)
