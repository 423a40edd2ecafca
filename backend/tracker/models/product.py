"""Tracked product model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from tracker.models.price_history import PriceHistory
    from tracker.models.product_size import ProductSize
    from tracker.models.stock_snapshot import StockSnapshot


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product page tracked on a retailer site.

    Each product is uniquely identified by its normalized URL. The row holds
    the latest scraped state; history lives in price_history and
    stock_snapshots.
    """

    __tablename__ = "products"

    site: Mapped[str] = mapped_column(String(20), nullable=False, index=True, comment="Site enum value")
    external_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="Product id parsed from the URL"
    )
    url: Mapped[str] = mapped_column(String(2000), nullable=False, unique=True, comment="Normalized product URL")

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Pricing
    current_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    reference_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2),
        nullable=True,
        comment="Crossed-out price shown next to the current one"
    )
    discount_percent: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(5), nullable=False, default="EUR")

    last_checked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="Capture time of the latest snapshot"
    )

    __table_args__ = (
        Index("idx_products_site_created", "site", "created_at"),
    )

    # Relationships
    sizes: Mapped[List["ProductSize"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductSize.position",
    )
    price_history: Mapped[List["PriceHistory"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    stock_snapshots: Mapped[List["StockSnapshot"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, site={self.site}, name={self.name[:30]}, price={self.current_price})>"
