"""Supported retailer identities."""

from enum import Enum
from typing import Dict


class Site(str, Enum):
    """Retailers the tracker knows about.

    The value doubles as the routing key for adapters and as the prefix of
    the persisted browser session file.
    """

    ZARA = "zara"
    BERSHKA = "bershka"
    PULL_AND_BEAR = "pullandbear"
    MASSIMO_DUTTI = "massimodutti"

    @property
    def display_name(self) -> str:
        return SITE_DISPLAY_NAMES[self]

    @property
    def domain(self) -> str:
        return SITE_DOMAINS[self]


# Hostname fragments used for detection, matched case-insensitively
SITE_DOMAINS: Dict[Site, str] = {
    Site.ZARA: "zara.com",
    Site.BERSHKA: "bershka.com",
    Site.PULL_AND_BEAR: "pullandbear.com",
    Site.MASSIMO_DUTTI: "massimodutti.com",
}

SITE_DISPLAY_NAMES: Dict[Site, str] = {
    Site.ZARA: "Zara",
    Site.BERSHKA: "Bershka",
    Site.PULL_AND_BEAR: "Pull&Bear",
    Site.MASSIMO_DUTTI: "Massimo Dutti",
}


def supported_sites_label() -> str:
    """Human-readable list of sites, for error messages."""
    return ", ".join(SITE_DISPLAY_NAMES[site] for site in Site)
