"""
Domain classification.

Maps free text to a set of coarse shopping domains by keyword containment.
An empty set means "unclassified" and is never replaced by a default.
"""

from __future__ import annotations

from collections.abc import Iterable

from core.models import CatalogEntry, PageFacts
from core.text import normalize_text

DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "supplements": (
        "collagen",
        "peptides",
        "supplement",
        "supplements",
        "vitamin",
        "vitamins",
        "multivitamin",
        "protein powder",
    ),
    "coffee": ("coffee", "espresso", "beans", "roast", "k-cup", "keurig"),
    "grocery": (
        "olive oil",
        "extra virgin",
        "evoo",
        "cold pressed",
        "cold-pressed",
        "avocado oil",
        "cooking oil",
        "sunflower oil",
        "grapeseed oil",
        "sesame oil",
    ),
    "oralcare": ("toothpaste", "tooth paste", "mouthwash", "oral care", "toothbrush", "teeth", "gum", "gingivitis"),
    "household": ("laundry", "detergent", "dish soap", "cleaner", "cleaning", "soap"),
    "skincare": ("skincare", "moisturizer", "serum", "cleanser", "sunscreen", "lotion", "brightening"),
    "travel": ("luggage", "suitcase", "travel", "wheels", "accessories", "accessory"),
    "appliances": (
        "vacuum",
        "vacuuming",
        "robot vacuum",
        "robotic vacuum",
        "mop",
        "mopping",
        "suction",
        "dustbin",
        "self-emptying",
    ),
    "candle": ("candle", "candles", "wax", "scented", "aroma", "fragrance", "pillar", "votive", "tin", "jar candle"),
}

# Domains where a single cross-brand keyword match is enough evidence
PERMISSIVE_DOMAINS = frozenset({"oralcare", "skincare", "household", "coffee", "supplements"})

# Coarse groupings of adjacent domains for the brand-affinity exception
DOMAIN_FAMILIES: dict[str, str] = {
    "supplements": "wellness",
    "oralcare": "personal_care",
    "skincare": "personal_care",
    "coffee": "pantry",
    "grocery": "pantry",
    "household": "home",
    "candle": "home",
    "appliances": "home",
    "travel": "travel",
}

PAGE_CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "coffee": ("coffee", "espresso", "k-cup", "keurig", "beans"),
    "candles": ("candle", "candles", "scented", "soy candle", "soy", "fragrance"),
}
UNKNOWN_CATEGORY = "unknown"


def detect_domains(text: str | None) -> frozenset[str]:
    """Every domain whose keyword list has a hit in the normalized text."""
    haystack = normalize_text(text)
    if not haystack:
        return frozenset()
    return frozenset(
        domain for domain, keywords in DOMAIN_KEYWORDS.items() if any(keyword in haystack for keyword in keywords)
    )


def page_domains(facts: PageFacts) -> frozenset[str]:
    """Title and breadcrumbs only; body text carries recommendation noise."""
    return detect_domains(f"{facts.title} {facts.breadcrumb_text}")


def entry_domains(entry: CatalogEntry) -> frozenset[str]:
    return detect_domains(f"{entry.name} {entry.brand} {' '.join(entry.category_hints)} {entry.category}")


def domain_families(domains: Iterable[str]) -> frozenset[str]:
    return frozenset(DOMAIN_FAMILIES[d] for d in domains if d in DOMAIN_FAMILIES)


def is_permissive(domains: Iterable[str]) -> bool:
    return any(d in PERMISSIVE_DOMAINS for d in domains)


def detect_page_category(title: str | None, breadcrumb: str | None = None) -> str:
    """
    Single-label page category used by the exact-category score term.

    Each label scores one point per keyword present in title + breadcrumb.
    The higher score wins; a tie is broken by which label appears in the
    title alone, otherwise the page is 'unknown'.
    """
    title_lower = (title or "").lower()
    haystack = f"{title_lower}\n{(breadcrumb or '').lower()}"

    scores = {
        label: sum(1 for keyword in keywords if keyword in haystack)
        for label, keywords in PAGE_CATEGORY_KEYWORDS.items()
    }
    coffee, candles = scores["coffee"], scores["candles"]

    if coffee == 0 and candles == 0:
        return UNKNOWN_CATEGORY
    if coffee > candles:
        return "coffee"
    if candles > coffee:
        return "candles"

    coffee_in_title = any(keyword in title_lower for keyword in PAGE_CATEGORY_KEYWORDS["coffee"])
    candles_in_title = any(keyword in title_lower for keyword in PAGE_CATEGORY_KEYWORDS["candles"])
    if coffee_in_title and not candles_in_title:
        return "coffee"
    if candles_in_title and not coffee_in_title:
        return "candles"
    return UNKNOWN_CATEGORY
