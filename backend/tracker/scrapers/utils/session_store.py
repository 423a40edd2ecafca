"""Per-site persistence of browser session state (cookies and storage).

A warm session lets the next visit look like a returning client, which
matters a lot against the Akamai protection on Inditex sites. Losing a
session only costs trust, so every failure here is logged and swallowed.
"""

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from playwright.async_api import BrowserContext

from tracker.config import settings
from tracker.scrapers.sites import Site

logger = structlog.get_logger(__name__)

SessionState = Dict[str, Any]


class SessionStore:
    """File-backed store holding one Playwright storage state per site.

    Files are named ``<site>-session.json``. Saves replace the whole file;
    states are never merged.
    """

    def __init__(self, sessions_dir: Optional[Path | str] = None):
        self.sessions_dir = Path(sessions_dir) if sessions_dir is not None else Path(settings.SESSIONS_DIR)
        self.logger = logger.bind(component="session_store")

    def path_for(self, site: Site) -> Path:
        return self.sessions_dir / f"{site.value}-session.json"

    def _ensure_dir(self) -> None:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def has(self, site: Site) -> bool:
        """Check if a session file exists for a site."""
        return self.path_for(site).is_file()

    def load(self, site: Site) -> Optional[SessionState]:
        """Load the stored session state for a site.

        Returns:
            Storage state dict, or None when missing or unreadable
        """
        path = self.path_for(site)
        if not path.is_file():
            self.logger.info("session_not_found", site=site.value)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                state = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning("session_load_failed", site=site.value, error=str(e))
            return None

        if not isinstance(state, dict):
            self.logger.warning("session_malformed", site=site.value, type=type(state).__name__)
            return None

        self.logger.info(
            "session_loaded",
            site=site.value,
            cookies=len(state.get("cookies") or []),
        )
        return state

    def save(self, site: Site, state: SessionState) -> None:
        """Overwrite the stored session for a site.

        The state is written to a temporary file in the same directory and
        moved into place, so readers never see a half-written file.
        """
        path = self.path_for(site)
        tmp_name = None
        try:
            self._ensure_dir()
            fd, tmp_name = tempfile.mkstemp(
                dir=self.sessions_dir, prefix=f".{site.value}-", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state, f, indent=2)
            os.replace(tmp_name, path)
            tmp_name = None
            self.logger.info(
                "session_saved",
                site=site.value,
                cookies=len(state.get("cookies") or []),
            )
        except (OSError, TypeError, ValueError) as e:
            self.logger.error("session_save_failed", site=site.value, error=str(e))
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    self.logger.debug("session_tmp_cleanup_failed", path=tmp_name)

    async def save_from_context(self, site: Site, context: BrowserContext) -> None:
        """Capture a browser context's storage state and save it."""
        try:
            state = await context.storage_state()
        except Exception as e:
            self.logger.error("session_capture_failed", site=site.value, error=str(e))
            return
        self.save(site, state)

    def delete(self, site: Site) -> None:
        """Delete the stored session for a site, if any."""
        path = self.path_for(site)
        if not path.exists():
            return
        try:
            path.unlink()
            self.logger.info("session_deleted", site=site.value)
        except OSError as e:
            self.logger.error("session_delete_failed", site=site.value, error=str(e))

    def age_minutes(self, site: Site) -> int:
        """Age of the stored session in whole minutes, or -1 if absent."""
        path = self.path_for(site)
        try:
            mtime = path.stat().st_mtime
        except OSError:
            return -1
        return int((time.time() - mtime) // 60)
