"""Zara product page adapter.

Product pages live at URLs like
https://www.zara.com/pt/pt/casaco-p02753752.html and render sizes only
after the "add to cart" button is pressed.

Structure:
  - .product-detail-info__header-name for the product name
  - .money-amount__main inside .price-current / .price-old for prices
  - ul.size-selector-sizes > li > button[data-qa-action] for sizes
"""

from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page

from tracker.scrapers.base import (
    UNKNOWN_PRODUCT_NAME,
    BaseSiteAdapter,
    ExtractedProduct,
    PrepareOutcome,
    SizeAvailability,
)
from tracker.scrapers.selectors import SelectorChain, chain
from tracker.scrapers.sites import Site
from tracker.scrapers.utils.normalizer import (
    PriceNormalizer,
    is_valid_product_url,
)

# Button that opens the size picker, and the list it reveals
OPEN_SIZES_SELECTOR = '[data-qa-action="add-to-cart"]'
SIZES_LOADED_SELECTOR = ".size-selector-sizes"
PREPARE_TIMEOUT_MS = 10000

ZARA_SELECTORS: Dict[str, SelectorChain] = {
    "name": chain("name", [
        ".product-detail-info__header-name",
        ".product-detail-info__name",
        'h1[class*="product-detail"]',
        '[data-qa="product-name"]',
    ]),
    "current_price": chain("current_price", [
        ".price-current__amount",
        ".price__amount--current",
        '[data-qa="product-price-current"]',
        ".money-amount__main",
    ]),
    "reference_price": chain("reference_price", [
        ".price-old__amount",
        ".price__amount--old",
        '[data-qa="product-price-old"]',
        ".price-old .money-amount__main",
    ]),
    "discount": chain("discount", [
        ".price-current__discount-percentage",
        ".price__discount",
        '[data-qa="product-discount"]',
    ]),
    "image": chain(
        "image",
        [
            "img.media-image__image",
            ".product-detail-images img",
            "picture img",
            '[data-qa="product-image"] img',
        ],
        attrs=("src", "data-src", "data-lazy"),
        reject=lambda src: "placeholder" in src,
    ),
}

# data-qa-action values on size buttons -> (available, low_stock)
SIZE_STATE_MARKERS: Dict[str, tuple] = {
    "size-in-stock": (True, False),
    "size-low-on-stock": (True, True),
    "size-out-of-stock": (False, False),
}

_PRIMARY_SIZE_ITEMS = ".size-selector-sizes > li"
_PRIMARY_SIZE_LABEL = ".size-selector-sizes-size__label"
_LEGACY_SIZE_ITEMS = '.size-selector-list__item, [data-qa="size-selector-item"]'
_LEGACY_SIZE_LABELS = (
    ".product-size-info__main-label",
    '[data-qa-qualifier="size-selector-sizes-size-label"]',
)
_DISABLED_CLASSES = (
    "size-selector-sizes__size--disabled",
    "size-selector-sizes-size--unavailable",
)
_ENABLED_CLASS = "size-selector-sizes-size--enabled"


class ZaraAdapter(BaseSiteAdapter):
    """Zara product page adapter."""

    site = Site.ZARA
    base_url = "https://www.zara.com"

    def validate_url(self, url: str) -> bool:
        return is_valid_product_url(url, Site.ZARA)

    async def prepare_page(self, page: Page) -> PrepareOutcome:
        """Open the size picker so size buttons are in the DOM.

        Failure to find or click the button is logged and ignored; the
        page is extracted as-is.
        """
        outcome = PrepareOutcome(attempted=True)
        try:
            self.logger.info("opening_size_selector", selector=OPEN_SIZES_SELECTOR)
            await page.wait_for_selector(OPEN_SIZES_SELECTOR, timeout=PREPARE_TIMEOUT_MS)
            await page.click(OPEN_SIZES_SELECTOR)
            await page.wait_for_selector(SIZES_LOADED_SELECTOR, timeout=PREPARE_TIMEOUT_MS)
            outcome.succeeded = True
            self.logger.info("size_selector_opened")
        except Exception as e:
            outcome.error = str(e)
            self.logger.warning("size_selector_open_failed", error=str(e))
        return outcome

    def extract(self, html: str, url: str) -> ExtractedProduct:
        soup = BeautifulSoup(html or "", "html.parser")

        name = ZARA_SELECTORS["name"].first(soup)
        if not name:
            title = soup.title.get_text(strip=True) if soup.title else None
            self.logger.error(
                "product_name_not_found",
                url=url,
                page_title=title,
            )

        current_price = PriceNormalizer.parse_price(ZARA_SELECTORS["current_price"].first(soup))
        reference_price = PriceNormalizer.parse_price(ZARA_SELECTORS["reference_price"].first(soup))
        explicit_discount = PriceNormalizer.parse_discount_percent(ZARA_SELECTORS["discount"].first(soup))
        discount = self._reconcile_discount(explicit_discount, current_price, reference_price)

        sizes = self._extract_sizes(soup)
        image_url = self._absolute_image_url(ZARA_SELECTORS["image"].first(soup))

        self.logger.info(
            "zara_product_extracted",
            name=name,
            current_price=str(current_price) if current_price is not None else None,
            reference_price=str(reference_price) if reference_price is not None else None,
            discount=discount,
            sizes=len(sizes),
        )

        return ExtractedProduct(
            site=self.site,
            url=url,
            name=name or UNKNOWN_PRODUCT_NAME,
            current_price=current_price,
            reference_price=reference_price,
            discount_percent=discount,
            sizes=sizes,
            image_url=image_url,
        )

    def _extract_sizes(self, soup: BeautifulSoup) -> List[SizeAvailability]:
        """Extract sizes using the current list markup, then the legacy one."""
        items = soup.select(_PRIMARY_SIZE_ITEMS)
        if items:
            sizes = [s for s in (self._parse_primary_size(item) for item in items) if s]
        else:
            legacy = soup.select(_LEGACY_SIZE_ITEMS)
            if legacy:
                self.logger.info("using_legacy_size_markup", count=len(legacy))
            sizes = [s for s in (self._parse_legacy_size(item) for item in legacy) if s]

        self.logger.debug(
            "sizes_extracted",
            sizes=[f"{s.size}({'ok' if s.available else 'out'})" for s in sizes],
        )
        return sizes

    def _parse_primary_size(self, item: Tag) -> Optional[SizeAvailability]:
        button = item.find("button")
        if button is None:
            return None

        label_el = button.select_one(_PRIMARY_SIZE_LABEL)
        label = label_el.get_text(strip=True) if label_el else ""
        if not label:
            self.logger.debug("size_item_without_label")
            return None

        action = button.get("data-qa-action") or ""
        state = SIZE_STATE_MARKERS.get(action)
        if state is None:
            # Unknown marker: fall back to the item's CSS state
            classes = item.get("class") or []
            disabled = any(c in classes for c in _DISABLED_CLASSES)
            available = not disabled and _ENABLED_CLASS in classes
            state = (available, False)

        available, low_stock = state
        return SizeAvailability(size=label, available=available, low_stock=low_stock)

    def _parse_legacy_size(self, item: Tag) -> Optional[SizeAvailability]:
        label = ""
        for selector in _LEGACY_SIZE_LABELS:
            el = item.select_one(selector)
            if el is not None:
                label = el.get_text(strip=True)
                if label:
                    break
        if not label:
            text = item.get_text("\n", strip=True)
            label = text.split("\n")[0].strip() if text else ""
        if not label:
            return None

        button = item.find("button")
        action = (button.get("data-qa-action") if button is not None else None) or ""
        available, low_stock = SIZE_STATE_MARKERS.get(action, (False, False))
        return SizeAvailability(size=label, available=available, low_stock=low_stock)

    def _absolute_image_url(self, src: Optional[str]) -> Optional[str]:
        if not src:
            return None
        if src.startswith("//"):
            return f"https:{src}"
        if src.startswith("/"):
            return f"{self.base_url}{src}"
        parsed = urlparse(src)
        if parsed.scheme in ("http", "https"):
            return src
        return None
