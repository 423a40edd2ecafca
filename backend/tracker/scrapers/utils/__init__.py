"""Scraper utilities."""

from tracker.scrapers.utils.normalizer import (
    PriceNormalizer,
    calculate_discount_percent,
    detect_site,
    extract_product_id,
    is_valid_product_url,
    normalize_url,
    parse_discount_percent,
    parse_price,
    random_delay,
)
from tracker.scrapers.utils.session_store import SessionStore

__all__ = [
    "PriceNormalizer",
    "SessionStore",
    "calculate_discount_percent",
    "detect_site",
    "extract_product_id",
    "is_valid_product_url",
    "normalize_url",
    "parse_discount_percent",
    "parse_price",
    "random_delay",
]
