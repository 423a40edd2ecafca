"""Point-in-time copies of a product's size list."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import JSON, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.models.base import Base, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from tracker.models.product import Product


class StockSnapshot(UUIDPrimaryKeyMixin, Base):
    """Size availability as captured at one point in time.

    sizes holds an ordered list of {"size", "available", "low_stock"} dicts.
    """

    __tablename__ = "stock_snapshots"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sizes: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_stock_snapshots_product_recorded", "product_id", "recorded_at"),
    )

    product: Mapped["Product"] = relationship(back_populates="stock_snapshots")

    def __repr__(self) -> str:
        return f"<StockSnapshot(id={self.id}, product_id={self.product_id}, sizes={len(self.sizes or [])})>"
