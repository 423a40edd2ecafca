"""SQLAlchemy models for the tracker.

All models are imported here so metadata.create_all() sees every table.
"""

from tracker.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from tracker.models.product import Product
from tracker.models.product_size import ProductSize
from tracker.models.price_history import PriceHistory
from tracker.models.stock_snapshot import StockSnapshot

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Product",
    "ProductSize",
    "PriceHistory",
    "StockSnapshot",
]
