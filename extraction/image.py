"""
Representative image extraction.

Strategies run in order; a candidate is only accepted when it is an https
URL on the image CDN, otherwise the chain moves on. Open Graph / Twitter
meta tags run last because they sometimes point at a brand tile instead of
the product photo.
"""

from __future__ import annotations

import html
import json
import logging
import re

from core.identity import is_valid_image_url
from extraction.chain import first_match
from extraction.noise_guard import is_safe_to_extract

logger = logging.getLogger(__name__)

DYNAMIC_IMAGE_PATTERNS = [
    re.compile(r"data-a-dynamic-image\s*=\s*\"([^\"]+)\"", re.IGNORECASE),
    re.compile(r"data-a-dynamic-image\s*=\s*'([^']+)'", re.IGNORECASE),
]

SINGLE_URL_PATTERNS = [
    re.compile(r"data-old-hires\s*=\s*\"(https?:[^\"]+)\"", re.IGNORECASE),
    re.compile(r"data-old-hires\s*=\s*'(https?:[^']+)'", re.IGNORECASE),
    re.compile(r"id=\"landingImage\"[^>]+src=\"(https?:[^\"]+)\"", re.IGNORECASE),
    re.compile(r"id='landingImage'[^>]+src='(https?:[^']+)'", re.IGNORECASE),
    re.compile(r"\"landingImage\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
    re.compile(r"\"mainImage\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
    re.compile(r"\"hiRes\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
    re.compile(r"\"large\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
    re.compile(r"\"mainUrl\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
    re.compile(r"\"displayUrl\"\s*:\s*\"(https?:\\/\\/[^\"]+)\"", re.IGNORECASE),
]

CDN_IMAGE_RE = re.compile(r"https?://m\.media-amazon\.com/images/I/[^\"'\s]+\.(?:jpg|jpeg|png|webp)", re.IGNORECASE)
ESCAPED_URL_RE = re.compile(r"https?:\\/\\/[^\"'\s,{}\[\]]+", re.IGNORECASE)
PLAIN_URL_RE = re.compile(r"https?://[^\"'\s,{}\[\]]+", re.IGNORECASE)

META_IMAGE_NAMES = ("og:image:secure_url", "og:image", "twitter:image")


def _unescape_slashes(url: str) -> str:
    return url.replace("\\/", "/") if "\\/" in url else url


def _accept(url: str | None) -> str | None:
    if url and is_valid_image_url(url):
        return url.strip()
    if url:
        logger.debug(f"Rejected image candidate outside allow-list: {url[:120]}")
    return None


def _largest_from_map(decoded: str) -> str | None:
    try:
        parsed = json.loads(decoded)
    except ValueError:
        return None
    if not isinstance(parsed, dict):
        return None

    best_url: str | None = None
    best_area = -1.0
    for raw_url, dims in parsed.items():
        url = _accept(_unescape_slashes(str(raw_url)))
        if url is None:
            continue
        area = 0.0
        if isinstance(dims, list) and len(dims) >= 2:
            try:
                area = float(dims[0]) * float(dims[1])
            except (TypeError, ValueError):
                area = 0.0
        if area > best_area:
            best_area = area
            best_url = url
    return best_url


def image_from_dynamic_map(markup: str) -> str | None:
    """``data-a-dynamic-image`` map of url -> [width, height]; largest area wins."""
    for pattern in DYNAMIC_IMAGE_PATTERNS:
        match = pattern.search(markup)
        if not match:
            continue

        decoded = html.unescape(match.group(1))
        best = _largest_from_map(decoded)
        if best:
            return best

        # Map did not parse; take the first URL inside it
        escaped = ESCAPED_URL_RE.search(decoded)
        if escaped:
            url = _accept(_unescape_slashes(escaped.group(0)))
            if url:
                return url
        plain = PLAIN_URL_RE.search(decoded)
        if plain:
            url = _accept(plain.group(0))
            if url:
                return url
    return None


def image_from_known_attributes(markup: str) -> str | None:
    for pattern in SINGLE_URL_PATTERNS:
        match = pattern.search(markup)
        if not match:
            continue
        url = _accept(_unescape_slashes(html.unescape(match.group(1))))
        if url:
            return url
    return None


def image_from_cdn_pattern(markup: str) -> str | None:
    for match in CDN_IMAGE_RE.finditer(markup):
        url = _accept(match.group(0))
        if url:
            return url
    return None


def image_from_meta_tags(markup: str) -> str | None:
    for name in META_IMAGE_NAMES:
        escaped = re.escape(name)
        patterns = (
            rf"<meta[^>]+(?:property|name)=[\"']{escaped}[\"'][^>]+content=[\"']([^\"']+)[\"'][^>]*>",
            rf"<meta[^>]+content=[\"']([^\"']+)[\"'][^>]+(?:property|name)=[\"']{escaped}[\"'][^>]*>",
        )
        for pattern in patterns:
            match = re.search(pattern, markup, re.IGNORECASE)
            if match:
                url = _accept(html.unescape(match.group(1)))
                if url:
                    return url
    return None


IMAGE_STRATEGIES = [
    image_from_dynamic_map,
    image_from_known_attributes,
    image_from_cdn_pattern,
    image_from_meta_tags,
]


def extract_image_url(markup: str | None) -> str | None:
    """Best representative product image URL, or None."""
    if not markup or not is_safe_to_extract(markup):
        return None
    return first_match(IMAGE_STRATEGIES, markup)
