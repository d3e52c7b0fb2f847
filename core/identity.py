"""
Host URL helpers: product page detection, item id extraction and the
allow-list checks applied to catalog product and image URLs.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

HOST_PATTERN = re.compile(r"(^|\.)amazon\.com$", re.IGNORECASE)
IMAGE_HOST_PATTERN = re.compile(r"(^|\.)m\.media-amazon\.com$", re.IGNORECASE)

# Non-product areas of the host site, matched as whole path segments
EXCLUDED_PATH_PREFIXES = ("/s", "/gp/cart", "/cart", "/gp/buy", "/checkout")

ITEM_PATH_PATTERNS = [
    re.compile(r"/dp/([A-Z0-9]{10})(?:[/?]|$)", re.IGNORECASE),
    re.compile(r"/gp/product/([A-Z0-9]{10})(?:[/?]|$)", re.IGNORECASE),
    re.compile(r"/gp/aw/d/([A-Z0-9]{10})(?:[/?]|$)", re.IGNORECASE),
]
ITEM_QUERY_PATTERN = re.compile(r"[?&]asin=([A-Z0-9]{10})(?:&|$)", re.IGNORECASE)

PRODUCT_URL_PATTERNS = [
    re.compile(r"^/dp/[A-Z0-9]{10}(?:[/?]|$)", re.IGNORECASE),
    re.compile(r"^/gp/product/[A-Z0-9]{10}(?:[/?]|$)", re.IGNORECASE),
    re.compile(r"^/gp/aw/d/[A-Z0-9]{10}(?:[/?]|$)", re.IGNORECASE),
    re.compile(r"/dp/[A-Z0-9]{10}(?:[/?]|$)", re.IGNORECASE),
]

MOBILE_ITEM_URL_TEMPLATE = "https://www.amazon.com/gp/aw/d/{item_id}?psc=1"


def _hostname(url: str) -> str | None:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None
    return parsed.hostname


def is_host_url(url: str | None) -> bool:
    """True for http(s) URLs on the host site."""
    if not url:
        return False
    host = _hostname(url)
    if host is None or not HOST_PATTERN.search(host):
        return False
    return urlparse(url).scheme in ("http", "https")


def extract_item_id(url: str | None) -> str | None:
    """Extract the 10-character item id from a host URL, upper-cased."""
    if not url:
        return None
    text = str(url)
    for pattern in ITEM_PATH_PATTERNS[:2]:
        match = pattern.search(text)
        if match:
            return match.group(1).upper()
    match = ITEM_QUERY_PATTERN.search(text)
    if match:
        return match.group(1).upper()
    match = ITEM_PATH_PATTERNS[2].search(text)
    if match:
        return match.group(1).upper()
    return None


def is_product_page(url: str | None) -> bool:
    """True when the URL looks like a product detail page on the host."""
    if not url or not is_host_url(url):
        return False
    path = urlparse(url).path or "/"
    if path == "/":
        return False
    if any(path == prefix or path.startswith(prefix + "/") for prefix in EXCLUDED_PATH_PREFIXES):
        return False
    return any(pattern.search(path) for pattern in ITEM_PATH_PATTERNS)


def is_valid_product_url(url: str | None) -> bool:
    """Catalog product URLs must point at an item page on the host."""
    if not url or not isinstance(url, str):
        return False
    host = _hostname(url)
    if host is None or not HOST_PATTERN.search(host):
        return False
    path = urlparse(url).path
    return any(pattern.search(path) for pattern in PRODUCT_URL_PATTERNS)


def is_valid_image_url(url: str | None) -> bool:
    """Only https URLs on the image CDN are accepted."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    if parsed.scheme != "https" or not parsed.hostname:
        return False
    return bool(IMAGE_HOST_PATTERN.search(parsed.hostname))


def mobile_item_url(url: str) -> str | None:
    item_id = extract_item_id(url)
    if not item_id:
        return None
    return MOBILE_ITEM_URL_TEMPLATE.format(item_id=item_id)
