"""Base site adapter interface and the data structures adapters produce.

Every retailer gets an adapter that inherits from BaseSiteAdapter. The
orchestrator only talks to adapters through validate_url(),
prepare_page() and extract().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

import structlog
from playwright.async_api import Page

from tracker.scrapers.sites import Site
from tracker.scrapers.utils.normalizer import calculate_discount_percent

# Name returned by extract() when no name selector matched. The orchestrator
# turns it into a PARSE_ERROR.
UNKNOWN_PRODUCT_NAME = "Unknown Product"


@dataclass
class SizeAvailability:
    """Availability of a single size on a product page."""

    size: str
    available: bool
    low_stock: bool = False

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.size:
            raise ValueError("size label is required")
        if self.low_stock and not self.available:
            raise ValueError("a low-stock size must be available")

    def to_dict(self) -> dict:
        return {"size": self.size, "available": self.available, "low_stock": self.low_stock}

    @classmethod
    def from_dict(cls, data: dict) -> "SizeAvailability":
        return cls(
            size=str(data["size"]),
            available=bool(data.get("available", False)),
            low_stock=bool(data.get("low_stock", data.get("lowStock", False))),
        )


@dataclass
class ExtractedProduct:
    """Partial product data pulled out of one page by an adapter."""

    site: Site
    url: str
    name: str = UNKNOWN_PRODUCT_NAME
    current_price: Optional[Decimal] = None
    reference_price: Optional[Decimal] = None
    discount_percent: Optional[int] = None
    sizes: List[SizeAvailability] = field(default_factory=list)
    image_url: Optional[str] = None

    @property
    def has_name(self) -> bool:
        return bool(self.name) and self.name != UNKNOWN_PRODUCT_NAME


@dataclass
class ProductSnapshot:
    """Point-in-time state of a product, handed to the storage gateway."""

    site: Site
    name: str
    url: str
    current_price: Decimal
    reference_price: Optional[Decimal] = None
    discount_percent: Optional[int] = None
    sizes: List[SizeAvailability] = field(default_factory=list)
    image_url: Optional[str] = None
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.name:
            raise ValueError("name is required")
        if not self.url:
            raise ValueError("url is required")
        if self.current_price is None or self.current_price < 0:
            raise ValueError("current_price must be a non-negative Decimal")
        if self.discount_percent is None:
            self.discount_percent = calculate_discount_percent(
                self.reference_price, self.current_price
            )

    @classmethod
    def from_extracted(
        cls, extracted: ExtractedProduct, captured_at: Optional[datetime] = None
    ) -> "ProductSnapshot":
        """Build a full snapshot from an adapter result."""
        return cls(
            site=extracted.site,
            name=extracted.name,
            url=extracted.url,
            current_price=extracted.current_price or Decimal("0"),
            reference_price=extracted.reference_price,
            discount_percent=extracted.discount_percent,
            sizes=list(extracted.sizes),
            image_url=extracted.image_url,
            captured_at=captured_at or datetime.now(timezone.utc),
        )

    @property
    def available_sizes(self) -> List[str]:
        return [s.size for s in self.sizes if s.available]

    @property
    def low_stock_sizes(self) -> List[str]:
        return [s.size for s in self.sizes if s.low_stock]


@dataclass
class PrepareOutcome:
    """Result of a best-effort page interaction.

    A failed interaction is recorded here and never raised.
    """

    attempted: bool = False
    succeeded: bool = False
    error: Optional[str] = None


class BaseSiteAdapter(ABC):
    """Abstract base class for all retailer adapters.

    Adapters are stateless: they validate URLs, optionally interact with
    the page before the HTML is captured, and turn HTML into an
    ExtractedProduct.
    """

    site: Site  # Must be overridden in subclass
    base_url: str = ""
    implemented: bool = True

    def __init__(self):
        """Initialize the adapter."""
        self.logger = structlog.get_logger(__name__).bind(adapter=self.site.value)

    @abstractmethod
    def validate_url(self, url: str) -> bool:
        """Check whether url is a product page this adapter can parse.

        Args:
            url: Product URL

        Returns:
            True if the URL can be scraped. Never raises.
        """

    async def prepare_page(self, page: Page) -> PrepareOutcome:
        """Interact with the page before extraction (e.g. open a size picker).

        The default does nothing.
        """
        return PrepareOutcome()

    @abstractmethod
    def extract(self, html: str, url: str) -> ExtractedProduct:
        """Turn a product page into an ExtractedProduct.

        Args:
            html: Full page HTML
            url: URL the HTML was fetched from

        Returns:
            ExtractedProduct; name is UNKNOWN_PRODUCT_NAME when it could not
            be found. Never raises on unexpected markup.
        """

    @staticmethod
    def _reconcile_discount(
        explicit: Optional[int],
        current: Optional[Decimal],
        reference: Optional[Decimal],
    ) -> Optional[int]:
        """Pick the discount to report.

        The page's own discount label wins; otherwise it is derived from
        the reference and current prices.
        """
        if explicit:
            return explicit
        return calculate_discount_percent(reference, current)
