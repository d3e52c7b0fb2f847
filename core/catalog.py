from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from core.exceptions import CatalogLoadError, MalformedCatalogRowError
from core.models import OPTIONAL_DEFAULTS, REQUIRED_FIELDS, CatalogEntry

if TYPE_CHECKING:
    from core.catalog_client import CatalogAPIClient

logger = logging.getLogger(__name__)

SOURCE_REMOTE = "remote"
SOURCE_STATIC = "static"

# ValidationError locations use the wire alias for aliased fields; the field
# names are listed too so rows keyed either way are classified the same.
_REQUIRED_LOCS = frozenset(REQUIRED_FIELDS) | {"product_url"}
_OPTIONAL_LOC_TO_ALIAS = {
    **{name: name for name in OPTIONAL_DEFAULTS},
    "review_count": "reviewCount",
    "image_url": "imageUrl",
    "keywords": "amazonKeywords",
    "category_hints": "amazonCategories",
}


class ValidationMode(str, Enum):
    """How a catalog row defect is handled.

    STRICT rejects the whole catalog on the first defective row.
    LENIENT substitutes defaults for malformed optional fields and drops rows
    whose identity fields are missing or invalid.
    """

    STRICT = "strict"
    LENIENT = "lenient"

    @classmethod
    def parse(cls, value: str | ValidationMode | None) -> ValidationMode:
        if isinstance(value, ValidationMode):
            return value
        try:
            return cls(str(value or cls.STRICT.value).strip().lower())
        except ValueError:
            logger.warning(f"[Catalog] Unknown validation mode '{value}', using strict")
            return cls.STRICT


def _errors_of(e: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in e.errors()]


def _lenient_repair(row: dict[str, Any], errors: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Replace the malformed optional fields of a row with defaults.

    Returns None when an identity field is at fault.
    """
    repaired = dict(row)
    for err in errors:
        loc = str(err["loc"][0]) if err["loc"] else ""
        if loc in _REQUIRED_LOCS:
            return None
        alias = _OPTIONAL_LOC_TO_ALIAS.get(loc)
        if alias is None:
            return None
        default = OPTIONAL_DEFAULTS[alias]
        repaired.pop(loc, None)
        repaired[alias] = list(default) if isinstance(default, list) else default
    return repaired


def validate_rows(
    rows: list[Any],
    mode: ValidationMode = ValidationMode.STRICT,
    source: str = SOURCE_STATIC,
) -> list[CatalogEntry]:
    """Validate raw catalog rows into entries.

    Raises:
        MalformedCatalogRowError: in strict mode, on the first defective row
            or duplicate id.
    """
    entries: list[CatalogEntry] = []
    seen_ids: set[str] = set()
    dropped = 0

    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            if mode is ValidationMode.STRICT:
                raise MalformedCatalogRowError("must be an object", row_index=idx, source=source)
            dropped += 1
            continue

        try:
            entry = CatalogEntry.model_validate(row)
        except ValidationError as e:
            errors = _errors_of(e)
            if mode is ValidationMode.STRICT:
                logger.error(f"[Catalog] Row {idx} from {source} failed validation: {errors}")
                raise MalformedCatalogRowError(
                    f"{len(errors)} validation error(s): {errors[0]['loc']} {errors[0]['msg']}",
                    row_index=idx,
                    source=source,
                    validation_errors=errors,
                ) from e

            repaired = _lenient_repair(row, errors)
            if repaired is None:
                logger.warning(f"[Catalog] Dropping row {idx} from {source}: {errors}")
                dropped += 1
                continue
            try:
                entry = CatalogEntry.model_validate(repaired)
            except ValidationError as e2:
                logger.warning(f"[Catalog] Dropping row {idx} from {source} after repair: {_errors_of(e2)}")
                dropped += 1
                continue

        if entry.id in seen_ids:
            if mode is ValidationMode.STRICT:
                raise MalformedCatalogRowError(f"duplicate product id '{entry.id}'", row_index=idx, source=source)
            logger.warning(f"[Catalog] Dropping duplicate id '{entry.id}' at row {idx} from {source}")
            dropped += 1
            continue

        seen_ids.add(entry.id)
        entries.append(entry)

    if dropped:
        logger.info(f"[Catalog] Kept {len(entries)} rows from {source}, dropped {dropped}")
    return entries


def validate_catalog_document(data: Any, mode: ValidationMode = ValidationMode.STRICT) -> list[CatalogEntry]:
    """Validate a static catalog document of the form ``{"products": [...]}``."""
    if not isinstance(data, dict):
        raise MalformedCatalogRowError("catalog document must be an object with a 'products' array", source=SOURCE_STATIC)
    products = data.get("products")
    if not isinstance(products, list):
        raise MalformedCatalogRowError("catalog document missing required 'products' array", source=SOURCE_STATIC)
    return validate_rows(products, mode=mode, source=SOURCE_STATIC)


def load_static_catalog(path: str | Path, mode: ValidationMode = ValidationMode.STRICT) -> list[CatalogEntry]:
    """Read and validate the bundled catalog document."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogLoadError(f"Failed to read catalog file {path}: {e}", source=SOURCE_STATIC, original_error=e) from e
    return validate_catalog_document(data, mode=mode)


class CatalogRepository:
    """
    Loads the catalog once per session.

    The remote table is tried first; the static document is used when the
    remote source is unconfigured, errors, or returns no rows. Concurrent
    callers share one in-flight load and its outcome is kept for the life of
    the repository.
    """

    def __init__(
        self,
        api_client: CatalogAPIClient | None = None,
        static_path: str | Path | None = None,
        mode: ValidationMode | str = ValidationMode.STRICT,
    ) -> None:
        self.api_client = api_client
        self.static_path = Path(static_path) if static_path else None
        self.mode = ValidationMode.parse(mode)
        self._load_task: asyncio.Task[list[CatalogEntry]] | None = None
        self.source: str | None = None

    @property
    def loaded(self) -> bool:
        return self._load_task is not None and self._load_task.done() and not self._load_task.cancelled() and self._load_task.exception() is None

    async def load(self) -> list[CatalogEntry]:
        if self._load_task is None:
            self._load_task = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._load_task)

    async def _load(self) -> list[CatalogEntry]:
        logger.info(
            "[Catalog] Load starting",
            extra={"catalog_source": SOURCE_REMOTE if self.api_client and self.api_client.configured else SOURCE_STATIC},
        )

        if self.api_client is not None and self.api_client.configured:
            try:
                rows = await self.api_client.fetch_active_products()
                entries = validate_rows(rows, mode=self.mode, source=SOURCE_REMOTE)
                if entries:
                    self.source = SOURCE_REMOTE
                    logger.info(f"[Catalog] Loaded {len(entries)} products from remote table", extra={"catalog_source": SOURCE_REMOTE})
                    return entries
                logger.warning("[Catalog] Remote table returned 0 products, falling back to static catalog")
            except Exception as e:
                logger.warning(f"[Catalog] Remote load failed, falling back to static catalog: {e}")

        if self.static_path is None:
            raise CatalogLoadError("No catalog source available: remote load failed and no static path configured")

        entries = load_static_catalog(self.static_path, mode=self.mode)
        self.source = SOURCE_STATIC
        logger.info(f"[Catalog] Loaded {len(entries)} products from {self.static_path}", extra={"catalog_source": SOURCE_STATIC})
        return entries
