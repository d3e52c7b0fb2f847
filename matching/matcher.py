from __future__ import annotations

import logging
from collections.abc import Iterable

from core.models import CatalogEntry, MatchResult, PageFacts, ScoredCandidate
from matching.domains import entry_domains, page_domains
from matching.scorer import has_brand_affinity, score_entry

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 3


def sort_key(candidate: ScoredCandidate) -> tuple[float, ...]:
    """Score, keyword matches, rating, review count; all descending."""
    return (
        -candidate.score,
        -candidate.keyword_match_count,
        -candidate.entry.rating,
        -candidate.entry.review_count,
    )


def is_item_in_catalog(item_id: str | None, catalog: Iterable[CatalogEntry]) -> bool:
    """True when the viewed item is itself one of the catalog entries."""
    if not item_id:
        return False
    wanted = item_id.upper()
    return any(entry.item_id == wanted for entry in catalog)


def match_catalog(facts: PageFacts, catalog: Iterable[CatalogEntry], limit: int = DEFAULT_LIMIT) -> MatchResult:
    """
    Rank in-stock catalog entries against the page.

    Unclassified pages, and pages whose domains no in-stock entry shares,
    return an empty result. The ordering is stable, so identical input
    always yields the same ranking.
    """
    in_stock = [entry for entry in catalog if entry.in_stock]
    domains = page_domains(facts)

    if not domains:
        logger.debug("[Matcher] Page unclassified; no alternatives", extra={"url": facts.url, "item_id": facts.item_id})
        return MatchResult()

    with_domains = [(entry, entry_domains(entry)) for entry in in_stock]
    if not any(domains & entry_d for _, entry_d in with_domains):
        logger.debug(f"[Matcher] No catalog entry in page domains {sorted(domains)}", extra={"url": facts.url})
        return MatchResult()

    pool = [
        (entry, entry_d)
        for entry, entry_d in with_domains
        if domains & entry_d or has_brand_affinity(entry, facts, domains, entry_d)
    ]

    scored = [score_entry(entry, facts, domains, entry_d) for entry, entry_d in pool]
    ranked = sorted((c for c in scored if c.score > 0), key=sort_key)

    logger.info(
        f"[Matcher] {len(ranked)} of {len(pool)} candidates scored for domains {sorted(domains)}",
        extra={"url": facts.url, "item_id": facts.item_id},
    )
    return MatchResult(top=ranked[: max(limit, 0)], scored=ranked)
