"""Placeholder adapters for sites without a parser yet.

They reject every URL, so the orchestrator refuses them before any
network activity.
"""

from tracker.scrapers.base import UNKNOWN_PRODUCT_NAME, BaseSiteAdapter, ExtractedProduct
from tracker.scrapers.sites import Site


class UnsupportedSiteAdapter(BaseSiteAdapter):
    """Adapter for a known site whose page parser is not written yet."""

    implemented = False

    def __init__(self, site: Site):
        self.site = site
        super().__init__()

    def validate_url(self, url: str) -> bool:
        return False

    def extract(self, html: str, url: str) -> ExtractedProduct:
        self.logger.warning("extract_called_on_unsupported_site", url=url)
        return ExtractedProduct(site=self.site, url=url, name=UNKNOWN_PRODUCT_NAME)
