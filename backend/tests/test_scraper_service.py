"""Tests for the scrape orchestrator."""

import asyncio
from decimal import Decimal
from typing import List, Optional
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from fakes import (
    CHALLENGE_HTML,
    ZARA_PRODUCT_HTML,
    ZARA_URL,
    make_browser,
    make_context,
    make_page,
    make_response,
)
from tracker.config import settings
from tracker.scrapers.outcomes import ErrorKind, ScrapeStatus, UpsertOutcome
from tracker.scrapers.scraper_service import ScrapeOptions, ScraperService
from tracker.scrapers.sites import Site

OTHER_URL = "https://www.zara.com/pt/pt/calcas-p01234567.html"
THIRD_URL = "https://www.zara.com/pt/pt/camisa-p07654321.html"

NO_DELAY = (0, 0)


class FakeStorage:
    """In-memory storage gateway recording what it was given."""

    def __init__(self, urls: Optional[List[str]] = None):
        self.urls = urls or []
        self.snapshots = []

    async def find_product_by_url(self, url):
        return None

    async def upsert_product(self, snapshot):
        self.snapshots.append(snapshot)
        return UpsertOutcome(
            product_id=uuid4(),
            created=True,
            price_changed=True,
            stock_changed=True,
        )

    async def append_price_history_if_changed(self, product_id, price):
        return True

    async def append_stock_snapshot_if_changed(self, product_id, sizes):
        return True

    async def list_product_urls(self, limit=None):
        return self.urls[:limit] if limit else list(self.urls)


class TestScrape:
    """Tests for ScraperService.scrape()."""

    async def test_success_is_persisted(self, make_manager, session_store):
        browser = make_browser()
        storage = FakeStorage()
        service = ScraperService(make_manager(browser), storage=storage)

        result = await service.scrape(f"  {ZARA_URL}  ")

        assert result.success
        assert result.status == ScrapeStatus.SUCCESS
        assert result.url == ZARA_URL
        assert result.site == Site.ZARA
        assert result.http_status == 200
        assert result.snapshot.name == "CASACO DE LÃ"
        assert result.snapshot.current_price == Decimal("39.95")
        assert result.snapshot.discount_percent == 20
        assert result.snapshot.available_sizes == ["S", "M"]
        assert result.snapshot.low_stock_sizes == ["M"]
        assert result.product_id is not None
        assert result.raw_html is None
        assert len(storage.snapshots) == 1
        assert session_store.has(Site.ZARA)

    async def test_no_persist(self, make_manager):
        storage = FakeStorage()
        service = ScraperService(make_manager(), storage=storage)

        result = await service.scrape(ZARA_URL, ScrapeOptions(persist=False))

        assert result.success
        assert result.changes is None
        assert storage.snapshots == []

    async def test_unsupported_site_is_rejected(self, make_manager):
        browser = make_browser()
        service = ScraperService(make_manager(browser))

        result = await service.scrape("https://www.example.com/item-p123.html")

        assert result.status == ScrapeStatus.REJECTED
        assert result.http_status == 400
        assert result.error.startswith("Unsupported site. Supported: Zara")
        browser.new_context.assert_not_awaited()

    async def test_invalid_product_url_is_rejected(self, make_manager):
        browser = make_browser()
        service = ScraperService(make_manager(browser))

        result = await service.scrape("https://www.zara.com/pt/pt/mulher-l1000.html")

        assert result.status == ScrapeStatus.REJECTED
        assert result.error == "Invalid Zara product URL"
        browser.new_context.assert_not_awaited()

    async def test_site_without_parser_is_rejected(self, make_manager):
        browser = make_browser()
        service = ScraperService(make_manager(browser))

        result = await service.scrape("https://www.bershka.com/pt/calcas-c0p123.html")

        assert result.status == ScrapeStatus.REJECTED
        assert result.site == Site.BERSHKA
        assert result.error == "Invalid Bershka product URL"
        browser.new_context.assert_not_awaited()

    async def test_missing_name_is_parse_error(self, make_manager, session_store):
        """The page HTML is kept for debugging and the session is still saved."""
        html = "<html><head><title>Zara</title></head><body><p>Loading</p></body></html>"
        context = make_context(page=make_page(html=html))
        storage = FakeStorage()
        service = ScraperService(make_manager(make_browser(context)), storage=storage)

        result = await service.scrape(ZARA_URL)

        assert result.status == ScrapeStatus.FAILED
        assert result.error_kind == ErrorKind.PARSE_ERROR
        assert result.http_status == 422
        assert result.raw_html == html
        assert storage.snapshots == []
        context.close.assert_awaited_once()
        assert session_store.has(Site.ZARA)

    async def test_blocked_navigation(self, make_manager, session_store):
        context = make_context(page=make_page(status=403))
        service = ScraperService(make_manager(make_browser(context)), storage=FakeStorage())

        result = await service.scrape(ZARA_URL)

        assert result.error_kind == ErrorKind.BLOCKED
        assert result.http_status == 403
        assert result.raw_html is None
        context.close.assert_awaited_once()
        context.storage_state.assert_awaited()
        assert session_store.has(Site.ZARA)

    async def test_unsolved_challenge_keeps_session(self, make_manager, session_store):
        context = make_context(page=make_page(html=CHALLENGE_HTML))
        storage = FakeStorage()
        service = ScraperService(make_manager(make_browser(context)), storage=storage)

        result = await service.scrape(ZARA_URL)

        assert result.error_kind == ErrorKind.CHALLENGE
        assert result.http_status == 403
        assert storage.snapshots == []
        context.close.assert_awaited_once()
        context.storage_state.assert_awaited()
        assert session_store.has(Site.ZARA)

    async def test_missing_sizes_dumps_html(self, make_manager, tmp_path, monkeypatch):
        """A page without sizes is still a success, with its HTML kept on disk."""
        monkeypatch.setattr(settings, "DEBUG_HTML_DIR", tmp_path / "debug")
        html = ZARA_PRODUCT_HTML.split('<ul class="size-selector-sizes">')[0] + "</body></html>"
        context = make_context(page=make_page(html=html))
        service = ScraperService(make_manager(make_browser(context)), storage=FakeStorage())

        result = await service.scrape(ZARA_URL)

        assert result.success
        assert result.snapshot.sizes == []
        dumps = list((tmp_path / "debug").glob("debug-sizes-zara-*.html"))
        assert len(dumps) == 1
        assert dumps[0].read_text(encoding="utf-8") == html

    async def test_sites_are_serialized_across_services(self, make_manager):
        """Two services sharing one browser never hold two Zara pages at once."""
        browser = make_browser()
        open_now = 0
        most_open = 0

        async def new_context(**kwargs):
            nonlocal open_now, most_open
            open_now += 1
            most_open = max(most_open, open_now)
            context = make_context()

            async def close():
                nonlocal open_now
                open_now -= 1

            context.close = AsyncMock(side_effect=close)
            await asyncio.sleep(0)
            return context

        browser.new_context = AsyncMock(side_effect=new_context)
        manager = make_manager(browser)
        first = ScraperService(manager, storage=FakeStorage())
        second = ScraperService(manager, storage=FakeStorage())

        results = await asyncio.gather(first.scrape(ZARA_URL), second.scrape(OTHER_URL))

        assert all(r.success for r in results)
        assert browser.new_context.await_count == 2
        assert most_open == 1

    async def test_storage_failure_becomes_unknown(self, make_manager):
        storage = FakeStorage()
        storage.upsert_product = AsyncMock(side_effect=RuntimeError("database is locked"))
        service = ScraperService(make_manager(), storage=storage)

        result = await service.scrape(ZARA_URL)

        assert result.error_kind == ErrorKind.UNKNOWN
        assert result.http_status == 500
        assert "database is locked" in result.error


class TestBatches:
    """Tests for scrape_many() and refresh_all()."""

    async def test_failure_does_not_abort_batch(self, make_manager):
        """A crash on one URL yields an UNKNOWN result for it alone."""
        browser = make_browser()
        browser.new_context.side_effect = [
            make_context(),
            RuntimeError("Target page, context or browser has been closed"),
            make_context(),
        ]
        manager = make_manager(browser)
        service = ScraperService(manager)

        results = await service.scrape_many(
            [ZARA_URL, OTHER_URL, THIRD_URL], ScrapeOptions(persist=False), delay_range_ms=NO_DELAY
        )

        assert [r.url for r in results] == [ZARA_URL, OTHER_URL, THIRD_URL]
        assert [r.success for r in results] == [True, False, True]
        assert results[1].error_kind == ErrorKind.UNKNOWN
        assert manager.active_contexts == 0
        browser.close.assert_awaited_once()

    async def test_refresh_uses_stored_urls(self, make_manager):
        storage = FakeStorage(urls=[ZARA_URL, OTHER_URL])
        service = ScraperService(make_manager(), storage=storage)

        results = await service.refresh_all(delay_range_ms=NO_DELAY, retry_wait_seconds=0)

        assert [r.url for r in results] == [ZARA_URL, OTHER_URL]
        assert all(r.success for r in results)
        assert len(storage.snapshots) == 2

    async def test_refresh_limit(self, make_manager):
        storage = FakeStorage(urls=[ZARA_URL, OTHER_URL, THIRD_URL])
        service = ScraperService(make_manager(), storage=storage)

        results = await service.refresh_all(limit=1, delay_range_ms=NO_DELAY, retry_wait_seconds=0)

        assert [r.url for r in results] == [ZARA_URL]

    async def test_refresh_with_nothing_tracked(self, make_manager):
        browser = make_browser()
        service = ScraperService(make_manager(browser), storage=FakeStorage())

        assert await service.refresh_all() == []
        assert await ScraperService(make_manager(browser)).refresh_all() == []
        browser.new_context.assert_not_awaited()

    async def test_refresh_retries_timeouts(self, make_manager):
        page = make_page()
        page.goto.side_effect = [PlaywrightTimeoutError("Timeout 60000ms exceeded."), make_response(200)]
        manager = make_manager(make_browser(make_context(page=page)))
        service = ScraperService(manager, storage=FakeStorage(urls=[ZARA_URL]))

        results = await service.refresh_all(delay_range_ms=NO_DELAY, retry_wait_seconds=0)

        assert results[0].success
        assert page.goto.await_count == 2

    async def test_refresh_gives_up_after_attempts(self, make_manager):
        page = make_page(goto_error=PlaywrightTimeoutError("Timeout 60000ms exceeded."))
        manager = make_manager(make_browser(make_context(page=page)))
        service = ScraperService(manager, storage=FakeStorage(urls=[ZARA_URL]))

        results = await service.refresh_all(delay_range_ms=NO_DELAY, retry_attempts=3, retry_wait_seconds=0)

        assert results[0].error_kind == ErrorKind.TIMEOUT
        assert page.goto.await_count == 3

    async def test_refresh_does_not_retry_blocks(self, make_manager):
        page = make_page(status=403)
        manager = make_manager(make_browser(make_context(page=page)))
        service = ScraperService(manager, storage=FakeStorage(urls=[ZARA_URL]))

        results = await service.refresh_all(delay_range_ms=NO_DELAY, retry_wait_seconds=0)

        assert results[0].error_kind == ErrorKind.BLOCKED
        assert page.goto.await_count == 1

    async def test_release_during_batch_pause_is_deferred(self, make_manager):
        """Another caller finishing between two items leaves the browser running."""
        browser = make_browser()
        manager = make_manager(browser)
        service = ScraperService(manager)
        released = []

        async def pause(*args):
            released.append(await manager.release())
            return 0.0

        with patch(
            "tracker.scrapers.scraper_service.random_delay", AsyncMock(side_effect=pause)
        ):
            results = await service.scrape_many(
                [ZARA_URL, OTHER_URL], ScrapeOptions(persist=False), delay_range_ms=NO_DELAY
            )
            assert released == [False]

        assert all(r.success for r in results)
        assert browser.new_context.await_count == 2
        assert manager.active_batches == 0
        browser.close.assert_awaited_once()
