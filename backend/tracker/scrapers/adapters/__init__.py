"""Site-specific adapter implementations.

Each adapter module implements a class that inherits from BaseSiteAdapter.
"""

from .zara import ZaraAdapter
from .unsupported import UnsupportedSiteAdapter

__all__ = [
    "ZaraAdapter",
    "UnsupportedSiteAdapter",
]
