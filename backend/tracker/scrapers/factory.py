"""Registry mapping each Site to its adapter."""

from typing import Dict, Optional, Type

import structlog

from tracker.scrapers.adapters.unsupported import UnsupportedSiteAdapter
from tracker.scrapers.base import BaseSiteAdapter
from tracker.scrapers.sites import Site

logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Registry of adapter classes keyed by Site.

    Lookups are total: a site without a registered adapter gets an
    UnsupportedSiteAdapter, whose URL validation always fails.
    """

    def __init__(self):
        """Initialize the adapter factory."""
        self._adapter_registry: Dict[Site, Type[BaseSiteAdapter]] = {}
        self._instances: Dict[Site, BaseSiteAdapter] = {}

    def register_adapter(self, site: Site, adapter_class: Type[BaseSiteAdapter]) -> None:
        """Register an adapter class for a site.

        Args:
            site: Site the adapter handles
            adapter_class: Adapter class (must inherit from BaseSiteAdapter)
        """
        if not issubclass(adapter_class, BaseSiteAdapter):
            raise ValueError(f"Adapter class must inherit from BaseSiteAdapter: {adapter_class}")

        self._adapter_registry[site] = adapter_class
        self._instances.pop(site, None)
        logger.info("adapter_registered", site=site.value, adapter_class=adapter_class.__name__)

    def get_adapter(self, site: Site) -> BaseSiteAdapter:
        """Return the adapter for a site.

        Adapters hold no per-request state, so one instance per site is reused.

        Args:
            site: Site identifier

        Returns:
            Adapter instance; never None
        """
        adapter = self._instances.get(site)
        if adapter is not None:
            return adapter

        adapter_class = self._adapter_registry.get(site)
        if adapter_class is None:
            logger.debug("adapter_not_implemented", site=site.value)
            adapter = UnsupportedSiteAdapter(site)
        else:
            adapter = adapter_class()

        self._instances[site] = adapter
        return adapter

    def has_adapter(self, site: Site) -> bool:
        """Check whether a real adapter is registered for a site."""
        return site in self._adapter_registry

    def get_registered_sites(self) -> list[Site]:
        return list(self._adapter_registry.keys())


_adapter_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory, registering built-in adapters on first use."""
    global _adapter_factory
    if _adapter_factory is None:
        from tracker.scrapers.register_adapters import register_all_adapters

        _adapter_factory = AdapterFactory()
        register_all_adapters(_adapter_factory)
    return _adapter_factory
