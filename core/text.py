from __future__ import annotations

import re

_APOSTROPHES = re.compile(r"[’']")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str | None) -> str:
    """Lower-case, unify apostrophes and collapse whitespace."""
    if not value:
        return ""
    text = _APOSTROPHES.sub("'", value.lower())
    return _WHITESPACE.sub(" ", text).strip()


def parse_money(text: str | None) -> float | None:
    """Return the numeric value of a price string like '$1,234.56'."""
    if not text:
        return None
    clean = "".join(c for c in text if c.isdigit() or c == ".")
    if not clean:
        return None
    try:
        return float(clean)
    except ValueError:
        return None


def format_usd(value: object) -> str:
    """Format a number as '$12.34'; empty string for missing or invalid values."""
    if value is None or value == "":
        return ""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ""
    if number != number or number in (float("inf"), float("-inf")):
        return ""
    return f"${number:.2f}"
