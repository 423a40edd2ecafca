"""Pydantic schemas for the tracker API.

All request/response models are defined here for easy import.
"""

from tracker.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from tracker.schemas.health import HealthCheckResponse
from tracker.schemas.product import (
    ExportResponse,
    PriceHistoryPoint,
    ProductExport,
    ProductResponse,
    SizeStock,
    StockSnapshotPoint,
)
from tracker.schemas.scrape import (
    CronAlerts,
    CronItem,
    CronResponse,
    PriceDropAlert,
    ScrapedProduct,
    ScrapeRequest,
    ScrapeResponse,
    StockAlert,
)

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthCheckResponse",
    # Product
    "ExportResponse",
    "PriceHistoryPoint",
    "ProductExport",
    "ProductResponse",
    "SizeStock",
    "StockSnapshotPoint",
    # Scrape
    "CronAlerts",
    "CronItem",
    "CronResponse",
    "PriceDropAlert",
    "ScrapedProduct",
    "ScrapeRequest",
    "ScrapeResponse",
    "StockAlert",
]
