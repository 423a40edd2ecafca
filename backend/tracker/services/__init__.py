"""Services holding the tracker's data operations."""

from tracker.services.product_service import ProductService

__all__ = [
    "ProductService",
]
