"""Dump page HTML for extractions that need a closer look."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import structlog

from tracker.config import settings
from tracker.scrapers.outcomes import ScrapeResult
from tracker.scrapers.sites import Site

logger = structlog.get_logger(__name__)


def save_debug_page(
    html: Optional[str],
    url: str,
    site: Optional[Site] = None,
    prefix: str = "debug",
    directory: Optional[Path | str] = None,
) -> Optional[Path]:
    """Write page HTML to ``<prefix>-<site>-<timestamp>.html`` in the debug directory.

    Returns:
        Path of the written file, or None when there was nothing to write
        or writing failed
    """
    if not html:
        return None

    target_dir = Path(directory) if directory is not None else Path(settings.DEBUG_HTML_DIR)
    site_name = site.value if site else "unknown"
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    path = target_dir / f"{prefix}-{site_name}-{stamp}.html"
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    except OSError as e:
        logger.error("debug_html_save_failed", url=url, error=str(e))
        return None

    logger.info("debug_html_saved", url=url, path=str(path))
    return path


def save_debug_html(result: ScrapeResult, directory: Optional[Path | str] = None) -> Optional[Path]:
    """Write the raw HTML kept on a failed result to the debug directory."""
    return save_debug_page(result.raw_html, result.url, result.site, directory=directory)
