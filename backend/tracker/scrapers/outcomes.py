"""Structured outcomes for navigation and scrape attempts.

Failures in the scraping core are returned as values rather than raised,
so callers can branch on ErrorKind without exception handling.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from uuid import UUID

from tracker.scrapers.base import ProductSnapshot
from tracker.scrapers.sites import Site


class ErrorKind(str, Enum):
    """Why a scrape attempt failed after the browser was involved."""

    BLOCKED = "BLOCKED"  # HTTP 403, IP or session flagged
    CHALLENGE = "CHALLENGE"  # anti-bot interstitial did not clear
    TIMEOUT = "TIMEOUT"  # navigation exceeded the browser timeout
    PARSE_ERROR = "PARSE_ERROR"  # page loaded but product name not found
    UNKNOWN = "UNKNOWN"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def suggestions(self) -> List[str]:
        return list(_SUGGESTIONS.get(self, ()))


_HTTP_STATUS = {
    ErrorKind.BLOCKED: 403,
    ErrorKind.CHALLENGE: 403,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.PARSE_ERROR: 422,
    ErrorKind.UNKNOWN: 500,
}

_SUGGESTIONS = {
    ErrorKind.BLOCKED: (
        "Wait 30 minutes before trying again",
        "The IP may be temporarily blocked",
        "Try using a VPN or proxy",
    ),
    ErrorKind.CHALLENGE: (
        "The session needs to be warmed up",
        "Run the scrape_product script with --visible",
        "Complete the challenge manually to save the session",
    ),
    ErrorKind.TIMEOUT: (
        "The page took too long to load",
        "Check your internet connection",
        "The site may be experiencing issues",
    ),
    ErrorKind.PARSE_ERROR: (
        "The page structure may have changed",
        "Check if the URL is a valid product page",
        "Check the debug HTML file for more info",
    ),
}


class ScrapeStatus(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"  # bad or unsupported URL, no network activity
    FAILED = "failed"


@dataclass
class NavResult:
    """Classified result of one page navigation."""

    success: bool
    http_status: int = 0
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, http_status: int) -> "NavResult":
        return cls(success=True, http_status=http_status)

    @classmethod
    def failed(cls, kind: ErrorKind, error: str, http_status: int = 0) -> "NavResult":
        return cls(success=False, http_status=http_status, error_kind=kind, error=error)


@dataclass
class UpsertOutcome:
    """What the storage gateway did with a snapshot."""

    product_id: UUID
    created: bool
    price_changed: bool
    stock_changed: bool
    previous_price: Optional[Decimal] = None

    @property
    def changed(self) -> bool:
        return self.created or self.price_changed or self.stock_changed

    def price_dropped(self, current_price: Decimal) -> bool:
        return self.previous_price is not None and current_price < self.previous_price


@dataclass
class ScrapeResult:
    """Outcome of scraping one URL."""

    url: str
    status: ScrapeStatus
    site: Optional[Site] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    snapshot: Optional[ProductSnapshot] = None
    changes: Optional[UpsertOutcome] = None
    raw_html: Optional[str] = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        return self.status == ScrapeStatus.SUCCESS

    @property
    def product_id(self) -> Optional[UUID]:
        return self.changes.product_id if self.changes else None

    @property
    def http_status(self) -> int:
        if self.status == ScrapeStatus.SUCCESS:
            return 200
        if self.status == ScrapeStatus.REJECTED:
            return 400
        return (self.error_kind or ErrorKind.UNKNOWN).http_status

    @classmethod
    def rejected(cls, url: str, error: str, site: Optional[Site] = None) -> "ScrapeResult":
        return cls(url=url, status=ScrapeStatus.REJECTED, site=site, error=error)

    @classmethod
    def failed(
        cls,
        url: str,
        kind: ErrorKind,
        error: str,
        site: Optional[Site] = None,
        raw_html: Optional[str] = None,
    ) -> "ScrapeResult":
        return cls(
            url=url,
            status=ScrapeStatus.FAILED,
            site=site,
            error_kind=kind,
            error=error,
            raw_html=raw_html,
        )
