"""Register all site adapters with a factory."""

import structlog

from tracker.scrapers.adapters import ZaraAdapter
from tracker.scrapers.factory import AdapterFactory
from tracker.scrapers.sites import Site

logger = structlog.get_logger(__name__)


def register_all_adapters(factory: AdapterFactory) -> None:
    """Register every implemented adapter.

    Bershka, Pull&Bear and Massimo Dutti have no parser yet and resolve to
    UnsupportedSiteAdapter through the factory.
    """
    adapters = [
        (Site.ZARA, ZaraAdapter),
    ]

    for site, adapter_class in adapters:
        try:
            factory.register_adapter(site, adapter_class)
        except Exception as e:
            logger.error(
                "adapter_registration_failed",
                site=site.value,
                error=str(e),
                exc_info=True,
            )

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_sites()),
        sites=[s.value for s in factory.get_registered_sites()],
    )
