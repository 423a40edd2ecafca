"""Product service: the storage gateway for scraped snapshots.

Handles upserting snapshots by URL and appending price and stock history
only when something actually changed.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tracker.core.exceptions import NotFoundError, StorageError
from tracker.models.price_history import PriceHistory
from tracker.models.product import Product
from tracker.models.product_size import ProductSize
from tracker.models.stock_snapshot import StockSnapshot
from tracker.schemas.product import ExportResponse, ProductExport
from tracker.scrapers.base import ProductSnapshot, SizeAvailability
from tracker.scrapers.outcomes import UpsertOutcome
from tracker.scrapers.utils.normalizer import extract_product_id, normalize_url

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


def _quantize(price: Decimal) -> Decimal:
    return Decimal(price).quantize(CENTS)


def _size_states(sizes: Sequence[SizeAvailability]) -> List[dict]:
    return [s.to_dict() for s in sizes]


class ProductService:
    """Service for managing tracked products and their history.

    upsert_product() commits; the append_* helpers only flush so they can
    share the caller's transaction.
    """

    def __init__(self, db: AsyncSession):
        """Initialize product service.

        Args:
            db: Async database session
        """
        self.db = db
        self.logger = logger.bind(service="product_service")

    async def find_product_by_url(self, url: str) -> Optional[Product]:
        """Find a product by URL, ignoring query string and fragment.

        Args:
            url: Product URL as scraped or as stored

        Returns:
            Product with sizes loaded, or None
        """
        result = await self.db.execute(
            select(Product)
            .options(selectinload(Product.sizes))
            .where(Product.url == normalize_url(url))
        )
        return result.scalar_one_or_none()

    async def get_product(self, product_id: UUID) -> Product:
        """Get a product by id.

        Raises:
            NotFoundError: If no product has this id
        """
        result = await self.db.execute(
            select(Product)
            .options(selectinload(Product.sizes))
            .where(Product.id == product_id)
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFoundError("Product", str(product_id))
        return product

    async def upsert_product(self, snapshot: ProductSnapshot) -> UpsertOutcome:
        """Insert or update the product a snapshot belongs to.

        A new URL creates the product with an initial price history entry
        and stock snapshot. A known URL updates the stored fields, replaces
        the size list, and appends history only where the state changed, so
        storing an identical snapshot twice adds no history rows.

        Args:
            snapshot: Snapshot produced by a successful scrape

        Returns:
            UpsertOutcome describing what was written

        Raises:
            StorageError: If the database write fails
        """
        url = normalize_url(snapshot.url)
        self.logger.info("upserting_product", url=url, name=snapshot.name[:50])

        try:
            product = await self.find_product_by_url(url)
            created = product is None
            previous_price = None if created else product.current_price

            sizes = [
                ProductSize(
                    position=index,
                    size=s.size,
                    available=s.available,
                    low_stock=s.low_stock,
                )
                for index, s in enumerate(snapshot.sizes)
            ]

            if created:
                self.logger.info("creating_new_product", url=url)
                product = Product(
                    site=snapshot.site.value,
                    external_id=extract_product_id(url),
                    url=url,
                    name=snapshot.name,
                    image_url=snapshot.image_url,
                    current_price=_quantize(snapshot.current_price),
                    reference_price=(
                        _quantize(snapshot.reference_price) if snapshot.reference_price is not None else None
                    ),
                    discount_percent=snapshot.discount_percent,
                    last_checked_at=snapshot.captured_at,
                    sizes=sizes,
                )
                self.db.add(product)
            else:
                self.logger.info("updating_existing_product", product_id=str(product.id))
                product.name = snapshot.name
                product.image_url = snapshot.image_url or product.image_url
                product.current_price = _quantize(snapshot.current_price)
                product.reference_price = (
                    _quantize(snapshot.reference_price) if snapshot.reference_price is not None else None
                )
                product.discount_percent = snapshot.discount_percent
                product.last_checked_at = snapshot.captured_at
                product.sizes = sizes

            # Flush to get product.id for history rows
            await self.db.flush()

            price_changed = await self.append_price_history_if_changed(
                product.id, snapshot.current_price, recorded_at=snapshot.captured_at
            )
            stock_changed = await self.append_stock_snapshot_if_changed(
                product.id, snapshot.sizes, recorded_at=snapshot.captured_at
            )

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("product_upsert_failed", url=url, error=str(e), exc_info=True)
            raise StorageError(url, str(e)) from e

        self.logger.info(
            "product_upserted",
            product_id=str(product.id),
            created=created,
            price_changed=price_changed,
            stock_changed=stock_changed,
        )

        return UpsertOutcome(
            product_id=product.id,
            created=created,
            price_changed=price_changed,
            stock_changed=stock_changed,
            previous_price=previous_price,
        )

    async def append_price_history_if_changed(
        self,
        product_id: UUID,
        price: Decimal,
        recorded_at: Optional[datetime] = None,
    ) -> bool:
        """Append a price history row unless the latest one has this price.

        Returns:
            True if a row was appended
        """
        price = _quantize(price)
        result = await self.db.execute(
            select(PriceHistory.price)
            .where(PriceHistory.product_id == product_id)
            .order_by(PriceHistory.recorded_at.desc())
            .limit(1)
        )
        last_price = result.scalar_one_or_none()

        if last_price is not None and _quantize(last_price) == price:
            return False

        self.db.add(
            PriceHistory(
                product_id=product_id,
                price=price,
                recorded_at=recorded_at or datetime.now(timezone.utc),
            )
        )
        await self.db.flush()
        self.logger.debug(
            "price_history_recorded",
            product_id=str(product_id),
            price=str(price),
            previous=str(last_price) if last_price is not None else None,
        )
        return True

    async def append_stock_snapshot_if_changed(
        self,
        product_id: UUID,
        sizes: Sequence[SizeAvailability],
        recorded_at: Optional[datetime] = None,
    ) -> bool:
        """Append a stock snapshot unless the latest one has the same size states.

        Sizes are compared as an ordered list.

        Returns:
            True if a snapshot was appended
        """
        states = _size_states(sizes)
        result = await self.db.execute(
            select(StockSnapshot.sizes)
            .where(StockSnapshot.product_id == product_id)
            .order_by(StockSnapshot.recorded_at.desc())
            .limit(1)
        )
        last_states = result.scalar_one_or_none()

        if last_states is not None:
            previous = [SizeAvailability.from_dict(s).to_dict() for s in last_states]
            if previous == states:
                return False

        self.db.add(
            StockSnapshot(
                product_id=product_id,
                sizes=states,
                recorded_at=recorded_at or datetime.now(timezone.utc),
            )
        )
        await self.db.flush()
        self.logger.debug("stock_snapshot_recorded", product_id=str(product_id), sizes=len(states))
        return True

    async def list_products(
        self,
        site: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Product]:
        """List tracked products, newest first."""
        query = select(Product).options(selectinload(Product.sizes))
        if site:
            query = query.where(Product.site == site)
        query = query.order_by(Product.created_at.desc())
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_product_urls(self, limit: Optional[int] = None) -> List[str]:
        """URLs of tracked products, newest first."""
        query = select(Product.url).order_by(Product.created_at.desc())
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_price_history(
        self,
        product_id: UUID,
        days: Optional[int] = None,
    ) -> List[PriceHistory]:
        """Get price history for a product, oldest first.

        Args:
            product_id: Product UUID
            days: Only entries from the last N days; all when None

        Returns:
            List of PriceHistory records, ordered chronologically
        """
        conditions = [PriceHistory.product_id == product_id]
        if days is not None:
            conditions.append(PriceHistory.recorded_at >= datetime.now(timezone.utc) - timedelta(days=days))

        result = await self.db.execute(
            select(PriceHistory)
            .where(and_(*conditions))
            .order_by(PriceHistory.recorded_at.asc())
        )
        history = list(result.scalars().all())

        self.logger.info(
            "price_history_fetched",
            product_id=str(product_id),
            days=days,
            count=len(history),
        )
        return history

    async def get_stock_snapshots(
        self,
        product_id: UUID,
        limit: Optional[int] = None,
    ) -> List[StockSnapshot]:
        """Get stock snapshots for a product, oldest first."""
        query = (
            select(StockSnapshot)
            .where(StockSnapshot.product_id == product_id)
            .order_by(StockSnapshot.recorded_at.desc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(reversed(result.scalars().all()))

    async def export_data(self) -> ExportResponse:
        """Every tracked product with its full price and stock history."""
        result = await self.db.execute(
            select(Product)
            .options(
                selectinload(Product.sizes),
                selectinload(Product.price_history),
                selectinload(Product.stock_snapshots),
            )
            .order_by(Product.created_at.desc())
        )
        products = []
        for product in result.scalars().all():
            exported = ProductExport.model_validate(product)
            exported.price_history.sort(key=lambda p: p.recorded_at)
            exported.stock_snapshots.sort(key=lambda s: s.recorded_at)
            products.append(exported)

        self.logger.info("products_exported", count=len(products))
        return ExportResponse(
            exported_at=datetime.now(timezone.utc),
            count=len(products),
            products=products,
        )
