"""
Relevance scoring of one catalog entry against the current page.

Order of evaluation:
1. Domain gate (with the brand-affinity exception)
2. Keyword list: explicit hints, else fallback tokens from name + brand
3. Substring matches in the page's combined search text
4. Minimum-evidence gate
5. Intent dominance rules
6. Additive terms: category, keywords, brand, rating tier, review tier

A candidate that fails a gate scores 0 and is dropped by the matcher.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from core.models import CatalogEntry, PageFacts, ScoredCandidate
from core.text import normalize_text
from matching.domains import UNKNOWN_CATEGORY, domain_families, entry_domains, is_permissive

logger = logging.getLogger(__name__)

GENERIC_KEYWORDS = frozenset({"coffee", "candle", "candles"})

FALLBACK_MIN_TOKEN_LENGTH = 5
FALLBACK_STOPWORDS = frozenset(
    {
        "with",
        "from",
        "that",
        "this",
        "your",
        "their",
        "amazon",
        "com",
        "pack",
        "count",
        "size",
        "ounce",
        "ounces",
        "pound",
        "pounds",
        "grams",
        "fresh",
        "medium",
        "large",
        "small",
        "black",
        "owned",
    }
)
TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+", re.IGNORECASE)

CATEGORY_MATCH_POINTS = 60
CATEGORY_DEFAULT_POINTS = 20
KEYWORD_POINTS = 12
BRAND_POINTS = 20

# (threshold, points), highest threshold first
RATING_TIERS = ((4.8, 10), (4.5, 7), (4.2, 4), (4.0, 2))
REVIEW_TIERS = ((5000, 10), (1000, 7), (300, 4), (100, 2))


@dataclass(frozen=True)
class IntentRule:
    """A high-specificity page intent that dominates the ranking."""

    name: str
    triggers: tuple[str, ...]
    bonus: int

    def mentioned_in(self, text: str) -> bool:
        return any(trigger in text for trigger in self.triggers)


INTENT_RULES = (IntentRule(name="collagen", triggers=("collagen", "peptides"), bonus=80),)


def fallback_keywords(entry: CatalogEntry) -> list[str]:
    """Name + brand tokens long enough to carry signal, de-duplicated in order."""
    tokens: list[str] = []
    seen: set[str] = set()
    for token in TOKEN_SPLIT_RE.split(f"{entry.name} {entry.brand}"):
        token = token.strip()
        if len(token) < FALLBACK_MIN_TOKEN_LENGTH:
            continue
        lower = token.lower()
        if lower in FALLBACK_STOPWORDS or lower in seen:
            continue
        seen.add(lower)
        tokens.append(token)
    return tokens


def candidate_keywords(entry: CatalogEntry) -> list[str]:
    return list(entry.keywords) if entry.keywords else fallback_keywords(entry)


def match_keywords(keywords: list[str], haystack: str) -> list[str]:
    matched = []
    for raw in keywords:
        keyword = normalize_text(raw)
        if keyword and keyword in haystack:
            matched.append(raw)
    return matched


def has_brand_affinity(
    entry: CatalogEntry,
    facts: PageFacts,
    page_domains: frozenset[str],
    candidate_domains: frozenset[str],
) -> bool:
    """Same domain family and the brand appears verbatim in the page title."""
    brand = normalize_text(entry.brand)
    if not brand or brand not in normalize_text(facts.title):
        return False
    return bool(domain_families(page_domains) & domain_families(candidate_domains))


def _tier_points(value: float, tiers: tuple[tuple[float, int], ...]) -> int:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return 0


def _page_intent_text(facts: PageFacts) -> str:
    return normalize_text(f"{facts.title} {facts.breadcrumb_text} {facts.feature_text} {facts.description_text}")


def _entry_intent_text(entry: CatalogEntry) -> str:
    return normalize_text(f"{entry.name} {entry.category} {' '.join(entry.category_hints)}")


def score_entry(
    entry: CatalogEntry,
    facts: PageFacts,
    page_domains: frozenset[str],
    candidate_domains: frozenset[str] | None = None,
) -> ScoredCandidate:
    """Score one catalog entry; a score of 0 means excluded."""
    if candidate_domains is None:
        candidate_domains = entry_domains(entry)

    if not (page_domains & candidate_domains) and not has_brand_affinity(
        entry, facts, page_domains, candidate_domains
    ):
        return ScoredCandidate(entry=entry, score=0, keyword_match_count=0)

    haystack = facts.combined_search_text
    matched = match_keywords(candidate_keywords(entry), haystack)
    match_count = len(matched)
    non_generic = sum(1 for kw in matched if normalize_text(kw) not in GENERIC_KEYWORDS)

    brand = normalize_text(entry.brand)
    brand_matches = bool(brand) and brand in haystack

    min_matches = 1 if brand_matches or is_permissive(page_domains) else 2
    if match_count < min_matches or non_generic < 1:
        return ScoredCandidate(entry=entry, score=0, keyword_match_count=match_count, matched_keywords=matched)

    score = 0

    page_intent = _page_intent_text(facts)
    entry_intent = _entry_intent_text(entry)
    for rule in INTENT_RULES:
        if not rule.mentioned_in(page_intent):
            continue
        if rule.mentioned_in(entry_intent):
            score += rule.bonus
        elif not brand_matches:
            logger.debug(f"[Scorer] {entry.id} excluded by {rule.name} intent")
            return ScoredCandidate(entry=entry, score=0, keyword_match_count=match_count, matched_keywords=matched)

    if facts.category != UNKNOWN_CATEGORY and entry.category == facts.category:
        score += CATEGORY_MATCH_POINTS
    else:
        score += CATEGORY_DEFAULT_POINTS

    score += match_count * KEYWORD_POINTS
    if brand_matches:
        score += BRAND_POINTS

    score += _tier_points(entry.rating, RATING_TIERS)
    score += _tier_points(entry.review_count, REVIEW_TIERS)

    return ScoredCandidate(entry=entry, score=score, keyword_match_count=match_count, matched_keywords=matched)
