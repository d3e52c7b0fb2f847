"""
Unified data models for the alternatives pipeline.

This module defines the records that flow between extraction, matching and
the navigation session:
- CatalogEntry: one curated catalog product (validated, immutable)
- PageFacts: facts extracted once per page identity (immutable, superseded on navigation)
- PageIdentity: URL + item id used to decide whether cached results are still valid
- ScoredCandidate / MatchResult: ephemeral output of a match pass
- ProductMeta: live rating/review/price resolved for a catalog entry
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.identity import extract_item_id, is_valid_image_url, is_valid_product_url

CATALOG_PRICE_PATTERN = re.compile(r"^\$\d+(?:\.\d{2})?$")

# Wire names (camelCase, as in the static catalog document) of the fields
# that identify a row. A row missing one of these is never usable.
REQUIRED_FIELDS = ("id", "name", "brand", "category", "productUrl")

# Optional fields and the neutral default substituted when they are missing.
OPTIONAL_DEFAULTS: dict[str, Any] = {
    "price": "",
    "rating": 0,
    "reviewCount": 0,
    "imageUrl": "",
    "description": "",
    "badges": [],
    "amazonKeywords": [],
    "amazonCategories": [],
    "availability": "in_stock",
}

Availability = Literal["in_stock", "out_of_stock"]


# =============================================================================
# CATALOG
# =============================================================================


class CatalogEntry(BaseModel):
    """
    A curated catalog product.

    Field names are snake_case; the static catalog document and the matcher
    hints use camelCase aliases (``productUrl``, ``amazonKeywords``...).
    Missing optional values are replaced with neutral defaults before
    validation so a partially populated row is still usable.

    Attributes:
        id: Unique catalog id
        category: Free-text category; must be non-empty
        price: Empty or a string like '$26.99'
        keywords: Explicit match hints (wire name ``amazonKeywords``)
        category_hints: Extra category text (wire name ``amazonCategories``)
        availability: 'in_stock' or 'out_of_stock'
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    id: str
    name: str
    brand: str
    category: str
    product_url: str = Field(alias="productUrl")

    price: str = ""
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0, alias="reviewCount")
    image_url: str = Field(default="", alias="imageUrl")
    description: str = ""
    badges: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list, alias="amazonKeywords")
    category_hints: list[str] = Field(default_factory=list, alias="amazonCategories")
    availability: Availability = "in_stock"

    @field_validator(
        "price",
        "rating",
        "review_count",
        "image_url",
        "description",
        "badges",
        "keywords",
        "category_hints",
        "availability",
        mode="before",
    )
    @classmethod
    def default_missing(cls, v: Any, info) -> Any:
        """Substitute the neutral default for a null optional field."""
        if v is None:
            alias = cls.model_fields[info.field_name].alias or info.field_name
            default = OPTIONAL_DEFAULTS[alias]
            return list(default) if isinstance(default, list) else default
        return v

    @field_validator("id", "name", "brand", "category", "product_url")
    @classmethod
    def require_text(cls, v: str) -> str:
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("product_url")
    @classmethod
    def check_product_url(cls, v: str) -> str:
        if not is_valid_product_url(v):
            raise ValueError("must be a valid product URL on the host site")
        return v

    @field_validator("price")
    @classmethod
    def check_price(cls, v: str) -> str:
        if v and not CATALOG_PRICE_PATTERN.match(v):
            raise ValueError("must be empty or a string like '$26.99'")
        return v

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, v: str) -> str:
        if v and not is_valid_image_url(v):
            raise ValueError("must be empty or a valid https image URL on the image host")
        return v

    @field_validator("badges", "keywords", "category_hints")
    @classmethod
    def check_text_list(cls, v: list[str]) -> list[str]:
        cleaned = [item.strip() for item in v]
        if any(not item for item in cleaned):
            raise ValueError("must only contain non-empty strings")
        return cleaned

    @property
    def in_stock(self) -> bool:
        return self.availability != "out_of_stock"

    @property
    def item_id(self) -> str | None:
        return extract_item_id(self.product_url)


# =============================================================================
# PAGE
# =============================================================================


class PageIdentity(BaseModel):
    """Identity of the currently viewed page."""

    model_config = ConfigDict(frozen=True)

    url: str
    item_id: str | None = None

    @classmethod
    def from_url(cls, url: str) -> PageIdentity:
        return cls(url=url, item_id=extract_item_id(url))

    def same_page(self, other: PageIdentity | None) -> bool:
        if other is None:
            return False
        if self.url != other.url:
            return False
        return not (self.item_id and other.item_id and self.item_id != other.item_id)


class PageFacts(BaseModel):
    """
    Facts extracted from one page identity.

    ``combined_search_text`` is the normalized title + features + description
    used for keyword containment. Breadcrumbs are kept separately and only
    feed domain classification.
    """

    model_config = ConfigDict(frozen=True)

    url: str = ""
    item_id: str | None = None
    title: str = ""
    breadcrumb_text: str = ""
    feature_text: str = ""
    description_text: str = ""
    combined_search_text: str = ""
    category: str = "unknown"

    price_text: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int | None = Field(default=None, ge=0)
    image_url: str | None = None

    @property
    def identity(self) -> PageIdentity:
        return PageIdentity(url=self.url, item_id=self.item_id)

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.combined_search_text)


# =============================================================================
# MATCH OUTPUT
# =============================================================================


@dataclass(frozen=True)
class ScoredCandidate:
    """One catalog entry scored against the current page."""

    entry: CatalogEntry
    score: int
    keyword_match_count: int
    matched_keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.entry.id,
            "name": self.entry.name,
            "brand": self.entry.brand,
            "product_url": self.entry.product_url,
            "score": self.score,
            "keyword_match_count": self.keyword_match_count,
            "matched_keywords": list(self.matched_keywords),
        }


@dataclass(frozen=True)
class MatchResult:
    """Capped ranking plus the full scored list (diagnostics only)."""

    top: list[ScoredCandidate] = field(default_factory=list)
    scored: list[ScoredCandidate] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.top)


@dataclass(frozen=True)
class ProductMeta:
    """Live values resolved from a catalog entry's item page."""

    rating: float | None = None
    review_count: int | None = None
    price_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rating": self.rating,
            "review_count": self.review_count,
            "price_text": self.price_text,
        }
