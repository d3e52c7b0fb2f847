"""Relevance matching: domain classification, scoring and ranking."""

from __future__ import annotations

from .domains import detect_domains, detect_page_category, entry_domains, page_domains
from .matcher import is_item_in_catalog, match_catalog
from .scorer import score_entry

__all__ = [
    "detect_domains",
    "detect_page_category",
    "entry_domains",
    "is_item_in_catalog",
    "match_catalog",
    "page_domains",
    "score_entry",
]
