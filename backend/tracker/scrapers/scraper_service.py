"""Scrape orchestration service.

Drives one URL through site detection, URL validation, navigation, page
preparation, extraction and persistence. Every outcome, including
unexpected exceptions, comes back as a ScrapeResult.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple
from uuid import UUID

import structlog
from playwright.async_api import BrowserContext

from tracker.config import settings
from tracker.scrapers.base import BaseSiteAdapter, ProductSnapshot, SizeAvailability
from tracker.scrapers.factory import AdapterFactory, get_adapter_factory
from tracker.scrapers.outcomes import (
    ErrorKind,
    ScrapeResult,
    ScrapeStatus,
    UpsertOutcome,
)
from tracker.scrapers.sites import Site, supported_sites_label
from tracker.scrapers.utils.browser_manager import BrowserManager
from tracker.scrapers.utils.debug_html import save_debug_page
from tracker.scrapers.utils.normalizer import detect_site, random_delay
from tracker.scrapers.utils.retry import scrape_with_retry
from tracker.scrapers.utils.session_store import SessionStore

logger = structlog.get_logger(__name__)


class StorageGateway(Protocol):
    """Persistence operations the orchestrator relies on."""

    async def find_product_by_url(self, url: str): ...

    async def upsert_product(self, snapshot: ProductSnapshot) -> UpsertOutcome: ...

    async def append_price_history_if_changed(self, product_id: UUID, price) -> bool: ...

    async def append_stock_snapshot_if_changed(
        self, product_id: UUID, sizes: Sequence[SizeAvailability]
    ) -> bool: ...

    async def list_product_urls(self, limit: Optional[int] = None) -> List[str]: ...


@dataclass
class ScrapeOptions:
    """Per-call scrape settings.

    headless and timeout_ms fall back to settings when None.
    """

    headless: Optional[bool] = None
    persist: bool = True
    timeout_ms: Optional[int] = None


class ScraperService:
    """Orchestrates adapters, the browser manager and the storage gateway.

    Scrapes of the same site are serialized through the browser manager's
    site lock, which every service sharing that manager sees.
    """

    def __init__(
        self,
        browser_manager: BrowserManager,
        session_store: Optional[SessionStore] = None,
        storage: Optional[StorageGateway] = None,
        adapter_factory: Optional[AdapterFactory] = None,
    ):
        """Initialize scraper service.

        Args:
            browser_manager: Owner of the shared browser
            session_store: Session files; defaults to the browser manager's store
            storage: Gateway used when a scrape should be persisted
            adapter_factory: Adapter registry; defaults to the global one
        """
        self.browser_manager = browser_manager
        self.session_store = session_store or browser_manager.session_store
        self.storage = storage
        self.adapter_factory = adapter_factory or get_adapter_factory()
        self.logger = logger.bind(service="scraper_service")

    async def scrape(self, url: str, options: Optional[ScrapeOptions] = None) -> ScrapeResult:
        """Scrape a single product URL.

        Args:
            url: Product page URL
            options: Scrape options

        Returns:
            ScrapeResult; never raises
        """
        options = options or ScrapeOptions()
        url = (url or "").strip()

        site = detect_site(url)
        if site is None:
            self.logger.info("scrape_rejected", url=url, reason="unsupported_site")
            return ScrapeResult.rejected(
                url, f"Unsupported site. Supported: {supported_sites_label()}"
            )

        adapter = self.adapter_factory.get_adapter(site)
        if not adapter.validate_url(url):
            self.logger.info("scrape_rejected", url=url, site=site.value, reason="invalid_url")
            return ScrapeResult.rejected(
                url, f"Invalid {site.display_name} product URL", site=site
            )

        async with self.browser_manager.site_lock(site):
            return await self._scrape_validated(url, site, adapter, options)

    async def _scrape_validated(
        self,
        url: str,
        site: Site,
        adapter: BaseSiteAdapter,
        options: ScrapeOptions,
    ) -> ScrapeResult:
        log = self.logger.bind(url=url, site=site.value)
        context: Optional[BrowserContext] = None
        try:
            context = await self.browser_manager.open_context(
                site, timeout_ms=options.timeout_ms, headless=options.headless
            )
            page = await self.browser_manager.open_page(context)

            nav = await self.browser_manager.navigate(page, url, timeout_ms=options.timeout_ms)
            if not nav.success:
                kind = nav.error_kind or ErrorKind.UNKNOWN
                log.warning("scrape_navigation_failed", error_kind=kind.value, error=nav.error)
                return ScrapeResult.failed(url, kind, nav.error or kind.value, site=site)

            prepared = await adapter.prepare_page(page)
            if prepared.attempted and not prepared.succeeded:
                log.info("page_preparation_skipped", error=prepared.error)

            html = await page.content()
            extracted = adapter.extract(html, url)

            if not extracted.has_name:
                log.error("product_name_not_found", html_length=len(html))
                return ScrapeResult.failed(
                    url,
                    ErrorKind.PARSE_ERROR,
                    "Could not extract product information",
                    site=site,
                    raw_html=html,
                )

            if not extracted.sizes:
                path = save_debug_page(html, url, site, prefix="debug-sizes")
                log.warning("no_sizes_extracted", debug_html=str(path) if path else None)

            await self.browser_manager.close_context(context, site)
            context = None

            snapshot = ProductSnapshot.from_extracted(extracted)
            log.info(
                "product_scraped",
                name=snapshot.name,
                current_price=str(snapshot.current_price),
                reference_price=str(snapshot.reference_price) if snapshot.reference_price else None,
                discount_percent=snapshot.discount_percent,
                sizes=len(snapshot.sizes),
            )

            result = ScrapeResult(
                url=url, status=ScrapeStatus.SUCCESS, site=site, snapshot=snapshot
            )
            if options.persist and self.storage is not None:
                result.changes = await self.storage.upsert_product(snapshot)
                log.info(
                    "product_persisted",
                    product_id=str(result.changes.product_id),
                    created=result.changes.created,
                    price_changed=result.changes.price_changed,
                    stock_changed=result.changes.stock_changed,
                )
            return result

        except Exception as e:
            log.error("scrape_failed", error=str(e), exc_info=True)
            return ScrapeResult.failed(
                url, ErrorKind.UNKNOWN, str(e) or type(e).__name__, site=site
            )
        finally:
            if context is not None:
                await self.browser_manager.close_context(context, site)

    async def scrape_many(
        self,
        urls: Sequence[str],
        options: Optional[ScrapeOptions] = None,
        delay_range_ms: Optional[Tuple[int, int]] = None,
    ) -> List[ScrapeResult]:
        """Scrape URLs one after another with a random pause between them.

        Returns:
            One ScrapeResult per URL, in input order. The browser is
            released afterwards.
        """
        return await self._run_batch(
            urls,
            options or ScrapeOptions(),
            delay_range_ms or settings.batch_delay_range(),
            retry_attempts=1,
        )

    async def refresh_all(
        self,
        urls: Optional[Sequence[str]] = None,
        options: Optional[ScrapeOptions] = None,
        delay_range_ms: Optional[Tuple[int, int]] = None,
        limit: Optional[int] = None,
        retry_attempts: int = 2,
        retry_wait_seconds: float = 30,
    ) -> List[ScrapeResult]:
        """Re-scrape tracked products and persist the changes.

        Args:
            urls: URLs to refresh; defaults to every stored product
            options: Scrape options; persisted by default
            delay_range_ms: Pause range between products
            limit: Maximum number of stored products to refresh
            retry_attempts: Attempts per URL while it keeps timing out
            retry_wait_seconds: Pause before a retry

        Returns:
            One ScrapeResult per refreshed URL
        """
        if urls is None:
            if self.storage is None:
                self.logger.warning("refresh_without_storage")
                return []
            urls = await self.storage.list_product_urls(limit=limit)
        elif limit is not None:
            urls = list(urls)[:limit]

        if not urls:
            self.logger.info("refresh_nothing_to_do")
            return []

        self.logger.info("refresh_started", count=len(urls))
        results = await self._run_batch(
            urls,
            options or ScrapeOptions(headless=True, persist=True),
            delay_range_ms or settings.cron_delay_range(),
            retry_attempts=retry_attempts,
            retry_wait_seconds=retry_wait_seconds,
        )
        self.logger.info(
            "refresh_complete",
            total=len(results),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
        )
        return results

    async def _run_batch(
        self,
        urls: Sequence[str],
        options: ScrapeOptions,
        delay_range_ms: Tuple[int, int],
        retry_attempts: int = 1,
        retry_wait_seconds: float = 30,
    ) -> List[ScrapeResult]:
        results: List[ScrapeResult] = []
        total = len(urls)
        try:
            async with self.browser_manager.batch():
                for index, url in enumerate(urls):
                    self.logger.info("batch_item_started", index=index + 1, total=total, url=url)
                    try:
                        if retry_attempts > 1:
                            result = await scrape_with_retry(
                                self.scrape,
                                url,
                                options,
                                attempts=retry_attempts,
                                wait_seconds=retry_wait_seconds,
                            )
                        else:
                            result = await self.scrape(url, options)
                    except Exception as e:
                        self.logger.error("batch_item_failed", url=url, error=str(e), exc_info=True)
                        result = ScrapeResult.failed(url, ErrorKind.UNKNOWN, str(e) or type(e).__name__)
                    results.append(result)

                    if index < total - 1:
                        waited = await random_delay(*delay_range_ms)
                        self.logger.debug("batch_delay", seconds=round(waited, 1))
        finally:
            await self.browser_manager.release()
        return results
