"""Current per-size availability of a product."""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.models.base import Base, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from tracker.models.product import Product


class ProductSize(UUIDPrimaryKeyMixin, Base):
    """One size row; the whole set is replaced on every update."""

    __tablename__ = "product_sizes"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Order on the page")
    size: Mapped[str] = mapped_column(String(50), nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    low_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    product: Mapped["Product"] = relationship(back_populates="sizes")

    def __repr__(self) -> str:
        return f"<ProductSize(size={self.size}, available={self.available}, low_stock={self.low_stock})>"
