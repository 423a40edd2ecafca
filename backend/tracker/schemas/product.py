"""Product Pydantic schemas for responses and exports."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SizeStock(BaseModel):
    """Availability of one size."""

    model_config = ConfigDict(from_attributes=True)

    size: str
    available: bool
    low_stock: bool = False


class PriceHistoryPoint(BaseModel):
    """Single price history data point."""

    model_config = ConfigDict(from_attributes=True)

    price: Decimal
    recorded_at: datetime


class StockSnapshotPoint(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sizes: List[SizeStock]
    recorded_at: datetime


class ProductResponse(BaseModel):
    """Product response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    site: str
    name: str
    url: str
    external_id: Optional[str] = None
    current_price: Decimal
    reference_price: Optional[Decimal] = None
    discount_percent: Optional[int] = None
    currency: str = "EUR"
    image_url: Optional[str] = None
    sizes: List[SizeStock] = []
    last_checked_at: datetime
    created_at: datetime


class ProductExport(ProductResponse):
    """Product with its full history, as written by the export."""

    price_history: List[PriceHistoryPoint] = []
    stock_snapshots: List[StockSnapshotPoint] = []


class ExportResponse(BaseModel):
    exported_at: datetime
    count: int
    products: List[ProductExport]
