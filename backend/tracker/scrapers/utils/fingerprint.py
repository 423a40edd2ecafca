"""Browser fingerprint presented to retailer sites.

The fingerprint is deliberately fixed: a stored session is only worth
reusing when the next visit comes from what looks like the same desktop
Chrome in Lisbon.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


CHROME_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


def get_realistic_headers(user_agent: str = CHROME_USER_AGENT) -> Dict[str, str]:
    """Headers a desktop Chrome sends on a top-level navigation."""
    return {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate, br",
        "Accept-Language": "pt-PT,pt;q=0.9,en-US;q=0.8,en;q=0.7",
        "Cache-Control": "max-age=0",
        "Sec-Ch-Ua": '"Chromium";v="122", "Not(A:Brand";v="24", "Google Chrome";v="122"',
        "Sec-Ch-Ua-Mobile": "?0",
        "Sec-Ch-Ua-Platform": '"Windows"',
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
        "Upgrade-Insecure-Requests": "1",
        "User-Agent": user_agent,
    }


@dataclass(frozen=True)
class Fingerprint:
    """Device and locale settings applied to every browser context."""

    user_agent: str = CHROME_USER_AGENT
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "pt-PT"
    timezone_id: str = "Europe/Lisbon"
    latitude: float = 38.7223
    longitude: float = -9.1393
    languages: Tuple[str, ...] = ("pt-PT", "pt", "en-US", "en")
    platform: str = "Win32"
    hardware_concurrency: int = 8
    device_memory: int = 8

    def context_options(self) -> dict:
        """Keyword arguments for Browser.new_context()."""
        return {
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "geolocation": {"latitude": self.latitude, "longitude": self.longitude},
            "permissions": ["geolocation"],
            "extra_http_headers": get_realistic_headers(self.user_agent),
            "bypass_csp": True,
            "ignore_https_errors": True,
            "java_script_enabled": True,
        }

    def stealth_script(self) -> str:
        """Init script masking the usual automation tells."""
        languages = ", ".join(f"'{lang}'" for lang in self.languages)
        return STEALTH_JS_TEMPLATE % {
            "languages": languages,
            "platform": self.platform,
            "hardware_concurrency": self.hardware_concurrency,
            "device_memory": self.device_memory,
        }


STEALTH_JS_TEMPLATE = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => [%(languages)s] });
Object.defineProperty(navigator, 'platform', { get: () => '%(platform)s' });
Object.defineProperty(navigator, 'hardwareConcurrency', { get: () => %(hardware_concurrency)d });
Object.defineProperty(navigator, 'deviceMemory', { get: () => %(device_memory)d });
window.chrome = { runtime: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) =>
  parameters.name === 'notifications'
    ? Promise.resolve({ state: 'denied' })
    : originalQuery.call(window.navigator.permissions, parameters);
"""


DEFAULT_FINGERPRINT = Fingerprint()
