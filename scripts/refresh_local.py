"""Local refresh loop.

Refreshes every tracked product, then sleeps a random 30-45 minutes
(REFRESH_INTERVAL_MIN_MINUTES / REFRESH_INTERVAL_MAX_MINUTES) and repeats
until interrupted. Uses the same RefreshScheduler as the API process.

Usage:
    python scripts/refresh_local.py
    python scripts/refresh_local.py --once
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import tracker modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

import structlog

from tracker.config import settings
from tracker.core.logging import configure_logging
from tracker.db.session import async_session_factory, create_tables
from tracker.scrapers.scheduler import RefreshScheduler
from tracker.scrapers.utils.browser_manager import BrowserManager
from tracker.services.product_service import ProductService

logger = structlog.get_logger("refresh_local")


async def run(once: bool) -> None:
    await create_tables()

    async with async_session_factory() as db:
        tracked = len(await ProductService(db).list_product_urls())
    logger.info(
        "refresh_loop_starting",
        tracked=tracked,
        min_minutes=settings.REFRESH_INTERVAL_MIN_MINUTES,
        max_minutes=settings.REFRESH_INTERVAL_MAX_MINUTES,
    )

    browser_manager = BrowserManager(headless=True)
    scheduler = RefreshScheduler(async_session_factory, browser_manager)

    try:
        if once:
            await scheduler.run_refresh()
            return

        scheduler.start(run_immediately=tracked > 0)
        # Runs until Ctrl+C; the scheduler reschedules itself after every run
        await asyncio.Event().wait()
    finally:
        if scheduler.is_running():
            scheduler.stop()
        await browser_manager.release(force=True)


def main():
    parser = argparse.ArgumentParser(description="Refresh tracked products on a jittered interval")
    parser.add_argument("--once", action="store_true", help="Run a single refresh and exit")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args()

    configure_logging(args.log_level)
    try:
        asyncio.run(run(args.once))
    except KeyboardInterrupt:
        logger.info("refresh_loop_stopped")


if __name__ == "__main__":
    main()
