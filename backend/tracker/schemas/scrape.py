"""Scrape and cron trigger schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tracker.schemas.product import SizeStock


class ScrapeRequest(BaseModel):
    """Request body for a single-URL scrape."""

    url: str = Field(..., min_length=1, max_length=2000)


class ScrapedProduct(BaseModel):
    """Snapshot captured by a scrape."""

    site: str
    name: str
    url: str
    current_price: Decimal
    reference_price: Optional[Decimal] = None
    discount_percent: Optional[int] = None
    image_url: Optional[str] = None
    sizes: List[SizeStock] = []
    captured_at: datetime


class ScrapeResponse(BaseModel):
    product: ScrapedProduct
    product_id: Optional[UUID] = None
    created: bool = False
    price_changed: bool = False
    stock_changed: bool = False
    message: str


class CronItem(BaseModel):
    """Outcome of one refreshed URL."""

    url: str
    success: bool
    name: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class PriceDropAlert(BaseModel):
    name: str
    url: str
    discount_percent: Optional[int] = None
    current_price: Decimal
    reference_price: Optional[Decimal] = None
    previous_price: Optional[Decimal] = None


class StockAlert(BaseModel):
    name: str
    url: str
    available_sizes: List[str]
    low_stock_sizes: List[str]


class CronAlerts(BaseModel):
    price_drops: List[PriceDropAlert] = []
    stock_alerts: List[StockAlert] = []


class CronResponse(BaseModel):
    """Summary of a refresh run."""

    message: str
    refreshed: int = 0
    failed: int = 0
    summary: List[CronItem] = []
    alerts: CronAlerts = CronAlerts()
    timestamp: datetime
