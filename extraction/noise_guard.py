"""
Interstitial / captcha detection.

Every extractor calls ``is_safe_to_extract`` itself before looking at the
markup, so each one stays safe when used on its own (for example on a
secondary fetch of another page variant).
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

NOISE_MARKERS = (
    "type the characters you see",
    "enter the characters you see",
    "automated access",
    "robot check",
    "captcha",
)


def find_noise_marker(markup: str | None) -> str | None:
    """Return the first interstitial marker present in the markup, if any."""
    if not markup:
        return None
    lowered = markup.lower()
    for marker in NOISE_MARKERS:
        if marker in lowered:
            return marker
    return None


def is_safe_to_extract(markup: str | None) -> bool:
    """False for empty markup and for bot-interstitial pages."""
    if not markup:
        return False
    marker = find_noise_marker(markup)
    if marker is not None:
        logger.debug(f"Interstitial marker '{marker}' found; skipping extraction")
        return False
    return True


