"""Text normalization utilities for prices, discounts and product URLs."""

import asyncio
import random
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional
from urllib.parse import urlparse, urlunparse

from tracker.scrapers.sites import SITE_DOMAINS, Site

_CURRENCY_SYMBOLS = re.compile(r"[€$£]")
_CURRENCY_CODES = re.compile(r"EUR|USD|GBP", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_EUROPEAN_THOUSANDS = re.compile(r"^\d{1,3}(\.\d{3})*,\d{2}$")
_EUROPEAN_DECIMAL = re.compile(r",\d{2}$")
_LEADING_NUMBER = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)")
_SIGNED_INTEGER = re.compile(r"-?\d+")

_ZARA_PRODUCT_PATH = re.compile(r"-p(\d+)\.html")


class PriceNormalizer:
    """Price and discount parsing for retailer price labels.

    Handles the formats seen on the Inditex storefronts:
    - "19,99 EUR" -> 19.99
    - "€19.99" -> 19.99
    - "1.234,56 €" -> 1234.56
    - "-20%" -> 20
    """

    @staticmethod
    def parse_price(raw: Optional[str]) -> Optional[Decimal]:
        """Parse a price label into a Decimal.

        Args:
            raw: Raw price text, possibly with currency symbol or code

        Returns:
            Decimal price, or None if the text holds no number
        """
        if not raw:
            return None

        cleaned = _CURRENCY_SYMBOLS.sub("", raw)
        cleaned = _CURRENCY_CODES.sub("", cleaned)
        cleaned = _WHITESPACE.sub("", cleaned).strip()

        if _EUROPEAN_THOUSANDS.match(cleaned):
            # "1.234,56" style
            cleaned = cleaned.replace(".", "").replace(",", ".")
        elif _EUROPEAN_DECIMAL.search(cleaned):
            # "19,99" style
            cleaned = cleaned.replace(",", ".", 1)

        match = _LEADING_NUMBER.match(cleaned)
        if not match:
            return None

        try:
            return Decimal(match.group(0))
        except InvalidOperation:
            return None

    @staticmethod
    def parse_discount_percent(raw: Optional[str]) -> Optional[int]:
        """Parse a discount label such as "-20%" or "20% OFF".

        Args:
            raw: Raw discount text

        Returns:
            Discount as a whole percentage in (0, 100], or None
        """
        if not raw:
            return None

        match = _SIGNED_INTEGER.search(raw)
        if not match:
            return None

        discount = abs(int(match.group(0)))
        if 0 < discount <= 100:
            return discount
        return None


def parse_price(raw: Optional[str]) -> Optional[Decimal]:
    """Module-level shortcut for PriceNormalizer.parse_price."""
    return PriceNormalizer.parse_price(raw)


def parse_discount_percent(raw: Optional[str]) -> Optional[int]:
    """Module-level shortcut for PriceNormalizer.parse_discount_percent."""
    return PriceNormalizer.parse_discount_percent(raw)


def calculate_discount_percent(
    reference: Optional[Decimal], current: Optional[Decimal]
) -> Optional[int]:
    """Derive a whole discount percentage from a price drop.

    Args:
        reference: Previous/reference price
        current: Current price

    Returns:
        round((reference - current) / reference * 100), or None when
        there is no drop
    """
    if reference is None or current is None:
        return None
    if reference <= 0 or current >= reference:
        return None
    ratio = (Decimal(reference) - Decimal(current)) / Decimal(reference) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def detect_site(url: Optional[str]) -> Optional[Site]:
    """Detect which retailer a URL belongs to.

    Args:
        url: Product URL

    Returns:
        The matching Site, or None if not recognized
    """
    if not url:
        return None

    lowered = url.lower()
    for site, domain in SITE_DOMAINS.items():
        if domain in lowered:
            return site
    return None


def is_valid_product_url(url: Optional[str], site: Optional[Site] = None) -> bool:
    """Check whether a URL looks like a product page for its site.

    Args:
        url: Product URL
        site: Site to validate against; detected from the URL when omitted

    Returns:
        True if the URL has the site's product path shape
    """
    if not url:
        return False

    site = site or detect_site(url)
    if site is None:
        return False

    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if not parsed.scheme or not parsed.netloc:
        return False
    if SITE_DOMAINS[site] not in parsed.netloc.lower():
        return False

    if site == Site.ZARA:
        # casaco-p02753752.html
        return bool(_ZARA_PRODUCT_PATH.search(parsed.path))

    return len(parsed.path) > 1


def extract_product_id(url: Optional[str]) -> Optional[str]:
    """Extract the retailer product id from a product URL.

    Args:
        url: Product URL

    Returns:
        Product id (e.g. "02753752"), or None if not found
    """
    if detect_site(url) != Site.ZARA:
        return None
    match = _ZARA_PRODUCT_PATH.search(url)
    return match.group(1) if match else None


def normalize_url(url: str) -> str:
    """Normalize a product URL for identity comparisons.

    Query strings and fragments on Inditex product pages only carry
    colour selection and tracking, so they are dropped.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.split("?")[0]

    return urlunparse(
        (parsed.scheme, parsed.netloc.lower(), parsed.path, parsed.params, "", "")
    )


async def random_delay(min_ms: int = 1000, max_ms: int = 3000) -> float:
    """Sleep for a uniformly random number of milliseconds.

    Args:
        min_ms: Lower bound in milliseconds
        max_ms: Upper bound in milliseconds

    Returns:
        Seconds actually slept
    """
    low, high = sorted((max(0, min_ms), max(0, max_ms)))
    seconds = random.uniform(low, high) / 1000
    await asyncio.sleep(seconds)
    return seconds
