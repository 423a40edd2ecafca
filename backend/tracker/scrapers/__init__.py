"""Scraping core for tracked retailer products.

This package provides:
- Site adapters that validate product URLs and parse product pages
- A stealth browser manager with per-site session persistence
- The orchestrator that turns a URL into a classified ScrapeResult
"""

from .base import (
    BaseSiteAdapter,
    ExtractedProduct,
    ProductSnapshot,
    SizeAvailability,
    UNKNOWN_PRODUCT_NAME,
)
from .factory import AdapterFactory, get_adapter_factory
from .sites import Site

__all__ = [
    # Base classes
    "BaseSiteAdapter",
    # Data structures
    "ExtractedProduct",
    "ProductSnapshot",
    "SizeAvailability",
    "UNKNOWN_PRODUCT_NAME",
    "Site",
    # Factory
    "AdapterFactory",
    "get_adapter_factory",
]
