"""Playwright browser lifecycle manager with anti-detection.

Owns one shared Chromium process and hands out short-lived, isolated
contexts that carry the site's stored session and a fixed desktop
fingerprint. Navigation results are classified into NavResult values
instead of being raised.
"""

import asyncio
import random
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Sequence, Tuple

import structlog
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Route,
    async_playwright,
)
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from tracker.config import settings
from tracker.scrapers.outcomes import ErrorKind, NavResult
from tracker.scrapers.sites import Site
from tracker.scrapers.utils.fingerprint import DEFAULT_FINGERPRINT, Fingerprint
from tracker.scrapers.utils.normalizer import random_delay
from tracker.scrapers.utils.session_store import SessionStore

logger = structlog.get_logger(__name__)


LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-site-isolation-trials",
    "--disable-web-security",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=1920,1080",
]

# Requests whose URL contains any of these are aborted
TRACKER_MARKERS = (
    "google-analytics",
    "googletagmanager",
    "facebook",
    "doubleclick",
    "hotjar",
    "analytics",
)

# Akamai Bot Manager interstitial fingerprints
CHALLENGE_MARKERS = ("bm-verify", "akam-logo", "_sec/verify")


def contains_challenge(html: Optional[str], markers: Sequence[str] = CHALLENGE_MARKERS) -> bool:
    """Check whether page HTML is an anti-bot challenge page."""
    if not html:
        return False
    return any(marker in html for marker in markers)


class BrowserManager:
    """Manages the shared Playwright browser and per-attempt contexts.

    - acquire() launches Chromium once; concurrent callers share it
    - open_context() restores the site's session and applies the fingerprint
    - open_page() blocks trackers and fonts
    - navigate() classifies the response (blocked, challenge, timeout)
    - close_context() saves the session before closing, on every path
    - batch() holds the browser open across a whole batch
    - site_lock() serializes work on one site across every caller
    - release() shuts the browser down when nothing holds it
    """

    def __init__(
        self,
        session_store: Optional[SessionStore] = None,
        fingerprint: Fingerprint = DEFAULT_FINGERPRINT,
        headless: Optional[bool] = None,
        timeout_ms: Optional[int] = None,
        proxy_urls: Optional[Sequence[str]] = None,
        pre_navigation_delay_ms: Tuple[int, int] = (500, 1500),
        settle_delay_ms: Tuple[int, int] = (1000, 2000),
        challenge_recheck_ms: Optional[int] = None,
    ):
        self.session_store = session_store or SessionStore()
        self.fingerprint = fingerprint
        self._headless = settings.HEADLESS if headless is None else headless
        self._timeout_ms = timeout_ms or settings.NAVIGATION_TIMEOUT_MS
        self._proxy_urls = list(proxy_urls if proxy_urls is not None else settings.get_proxy_list())
        self._pre_navigation_delay_ms = pre_navigation_delay_ms
        self._settle_delay_ms = settle_delay_ms
        self._challenge_recheck_ms = (
            settings.CHALLENGE_RECHECK_MS if challenge_recheck_ms is None else challenge_recheck_ms
        )
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._active_contexts = 0
        self._active_batches = 0
        self._site_locks: Dict[Site, asyncio.Lock] = {}

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @property
    def active_contexts(self) -> int:
        return self._active_contexts

    @property
    def active_batches(self) -> int:
        return self._active_batches

    def site_lock(self, site: Site) -> asyncio.Lock:
        """Lock shared by every scrape of site that goes through this manager.

        Two contexts of the same site would race to overwrite its session file.
        """
        lock = self._site_locks.get(site)
        if lock is None:
            lock = asyncio.Lock()
            self._site_locks[site] = lock
        return lock

    @asynccontextmanager
    async def batch(self) -> AsyncIterator["BrowserManager"]:
        """Keep the browser alive for the duration of a batch.

        release() calls made meanwhile, e.g. by a single API scrape landing
        in the pause between two batch items, are deferred.
        """
        self._active_batches += 1
        try:
            yield self
        finally:
            self._active_batches = max(0, self._active_batches - 1)

    async def acquire(
        self, headless: Optional[bool] = None, timeout_ms: Optional[int] = None
    ) -> Browser:
        """Return the live browser, launching it if needed.

        Launch is serialized so concurrent callers never start two processes.
        The headless flag only applies when a new process is launched.
        """
        if timeout_ms:
            self._timeout_ms = timeout_ms

        async with self._lock:
            return await self._ensure_browser(headless)

    async def _ensure_browser(self, headless: Optional[bool]) -> Browser:
        # Caller holds self._lock
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        if self._browser is not None:
            logger.warning("browser_disconnected_relaunching")
            self._browser = None

        use_headless = self._headless if headless is None else headless
        launch_kwargs = {
            "headless": use_headless,
            "slow_mo": settings.BROWSER_SLOW_MO_MS,
            "args": LAUNCH_ARGS,
        }
        if self._proxy_urls:
            launch_kwargs["proxy"] = {"server": random.choice(self._proxy_urls)}

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        logger.info("browser_launching", headless=use_headless, has_proxy=bool(self._proxy_urls))
        self._browser = await self._playwright.chromium.launch(**launch_kwargs)
        logger.info("browser_started", headless=use_headless)
        return self._browser

    async def open_context(
        self,
        site: Optional[Site] = None,
        timeout_ms: Optional[int] = None,
        headless: Optional[bool] = None,
    ) -> BrowserContext:
        """Create an isolated context carrying the site's stored session.

        The browser is launched first if needed. Every context returned here
        must be handed back to close_context().
        """
        timeout = timeout_ms or self._timeout_ms
        async with self._lock:
            browser = await self._ensure_browser(headless)
            self._active_contexts += 1

        context = None
        try:
            storage_state = self.session_store.load(site) if site else None
            logger.info(
                "browser_context_creating",
                site=site.value if site else "generic",
                with_session=storage_state is not None,
            )

            options = self.fingerprint.context_options()
            if storage_state is not None:
                options["storage_state"] = storage_state

            context = await browser.new_context(**options)
            context.set_default_timeout(timeout)
            context.set_default_navigation_timeout(timeout)
            await context.add_init_script(self.fingerprint.stealth_script())
        except Exception:
            self._active_contexts -= 1
            if context is not None:
                await context.close()
            raise
        return context

    async def open_page(self, context: BrowserContext) -> Page:
        """Open a page that drops tracker requests and font downloads."""
        page = await context.new_page()
        await page.route("**/*", _filter_request)
        return page

    async def navigate(
        self,
        page: Page,
        url: str,
        timeout_ms: Optional[int] = None,
    ) -> NavResult:
        """Navigate to url and classify the outcome.

        Never raises; every failure becomes a NavResult with an ErrorKind.
        """
        timeout = timeout_ms or self._timeout_ms
        try:
            logger.info("navigating", url=url)
            await random_delay(*self._pre_navigation_delay_ms)

            response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout)
            if response is None:
                return NavResult.failed(ErrorKind.UNKNOWN, "No response received")

            status = response.status
            logger.info("navigation_response", url=url, status=status)

            if status == 403:
                logger.error(
                    "navigation_blocked",
                    url=url,
                    hint="wait 30min, clear session or use a proxy",
                )
                return NavResult.failed(ErrorKind.BLOCKED, "Access blocked (HTTP 403)", status)

            await random_delay(*self._settle_delay_ms)

            html = await page.content()
            if contains_challenge(html):
                logger.warning("challenge_detected", url=url)
                await page.wait_for_timeout(self._challenge_recheck_ms)
                html = await page.content()
                if contains_challenge(html):
                    logger.error("challenge_not_cleared", url=url, hint="session may be cold")
                    return NavResult.failed(
                        ErrorKind.CHALLENGE, "Anti-bot challenge did not clear", 403
                    )
                logger.info("challenge_cleared", url=url)

            return NavResult.ok(status)

        except PlaywrightTimeoutError as e:
            logger.error("navigation_timeout", url=url, error=str(e))
            return NavResult.failed(ErrorKind.TIMEOUT, "Navigation timeout")
        except Exception as e:
            message = str(e) or type(e).__name__
            if "timeout" in message.lower():
                logger.error("navigation_timeout", url=url, error=message)
                return NavResult.failed(ErrorKind.TIMEOUT, "Navigation timeout")
            logger.error("navigation_failed", url=url, error=message, exc_info=True)
            return NavResult.failed(ErrorKind.UNKNOWN, message)

    async def close_context(self, context: BrowserContext, site: Optional[Site] = None) -> None:
        """Save the context's session for the site, then close it.

        Called after blocked or challenged attempts too: their cookies still
        carry whatever trust was earned.
        """
        try:
            if site is not None:
                await self.session_store.save_from_context(site, context)
            try:
                await context.close()
            except Exception as e:
                logger.warning("browser_context_close_failed", error=str(e))
                return
            logger.info("browser_context_closed", site=site.value if site else "generic")
        finally:
            self._active_contexts = max(0, self._active_contexts - 1)

    async def release(self, force: bool = False) -> bool:
        """Close the browser and the Playwright driver.

        Deferred while contexts are open or a batch holds the browser,
        unless force is set, so one caller finishing never kills another
        caller's page or a batch in its pause between items.

        Returns:
            True if the browser was shut down (or was not running)
        """
        async with self._lock:
            if (self._active_contexts > 0 or self._active_batches > 0) and not force:
                logger.info(
                    "browser_release_deferred",
                    active_contexts=self._active_contexts,
                    active_batches=self._active_batches,
                )
                return False
            if self._browser is not None:
                try:
                    await self._browser.close()
                except Exception as e:
                    logger.warning("browser_close_failed", error=str(e))
                self._browser = None
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning("playwright_stop_failed", error=str(e))
                self._playwright = None
            logger.info("browser_stopped")
            return True


async def _filter_request(route: Route) -> None:
    request = route.request
    url = request.url.lower()
    if any(marker in url for marker in TRACKER_MARKERS):
        await route.abort()
        return
    if request.resource_type == "font":
        await route.abort()
        return
    await route.continue_()


_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the process-wide BrowserManager."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager()
    return _browser_manager
