"""APScheduler-based refresh scheduler.

Re-scrapes every tracked product at a randomized interval. Each run picks
the next interval afresh, so refreshes never land on a fixed cadence.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tracker.config import settings
from tracker.scrapers.outcomes import ScrapeResult
from tracker.scrapers.scraper_service import ScraperService
from tracker.scrapers.utils.browser_manager import BrowserManager
from tracker.services.product_service import ProductService

logger = structlog.get_logger(__name__)

JOB_ID = "refresh_tracked_products"


class RefreshScheduler:
    """Runs the tracked-product refresh on a jittered schedule.

    The scheduler:
    - Picks a whole number of minutes between the configured bounds
    - Schedules a one-shot job, and reschedules after every run
    - Swallows and logs run failures so the next run still happens
    """

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        browser_manager: BrowserManager,
        min_minutes: Optional[int] = None,
        max_minutes: Optional[int] = None,
    ):
        """Initialize refresh scheduler.

        Args:
            db_session_factory: Async session factory for database access
            browser_manager: Browser manager shared with the API
            min_minutes: Lower interval bound, defaults to settings
            max_minutes: Upper interval bound, defaults to settings
        """
        self.db_session_factory = db_session_factory
        self.browser_manager = browser_manager
        self.min_minutes = min_minutes or settings.REFRESH_INTERVAL_MIN_MINUTES
        self.max_minutes = max_minutes or settings.REFRESH_INTERVAL_MAX_MINUTES
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="refresh_scheduler")
        self.last_run_at: Optional[datetime] = None

    def next_interval_minutes(self) -> int:
        """Random interval in whole minutes, bounds inclusive."""
        low, high = sorted((self.min_minutes, self.max_minutes))
        return random.randint(low, high)

    def start(self, run_immediately: bool = False) -> None:
        """Start the scheduler and queue the first refresh."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return
        self.scheduler.start()
        self.logger.info(
            "scheduler_started",
            min_minutes=self.min_minutes,
            max_minutes=self.max_minutes,
        )
        self.schedule_next(delay_minutes=0 if run_immediately else None)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def is_running(self) -> bool:
        return self.scheduler.running

    def schedule_next(self, delay_minutes: Optional[int] = None) -> Job:
        """Schedule the next refresh run.

        Args:
            delay_minutes: Fixed delay; a random interval is used when None
        """
        minutes = self.next_interval_minutes() if delay_minutes is None else delay_minutes
        run_at = datetime.now(timezone.utc) + timedelta(minutes=minutes)
        job = self.scheduler.add_job(
            func=self._run_refresh_wrapper,
            trigger=DateTrigger(run_date=run_at, timezone="UTC"),
            id=JOB_ID,
            name="Refresh tracked products",
            replace_existing=True,
            max_instances=1,
        )
        self.logger.info("refresh_scheduled", in_minutes=minutes, run_at=run_at.isoformat())
        return job

    async def _run_refresh_wrapper(self) -> None:
        """Entry point APScheduler calls; always reschedules."""
        try:
            await self.run_refresh()
        except Exception as e:
            self.logger.error("refresh_job_failed", error=str(e), exc_info=True)
        finally:
            if self.scheduler.running:
                self.schedule_next()

    async def run_refresh(self) -> List[ScrapeResult]:
        """Refresh every stored product once."""
        started = datetime.now(timezone.utc)
        self.logger.info("refresh_job_started")

        async with self.db_session_factory() as db:
            service = ScraperService(
                browser_manager=self.browser_manager,
                storage=ProductService(db),
            )
            results = await service.refresh_all()

        duration = (datetime.now(timezone.utc) - started).total_seconds()
        self.last_run_at = started
        self.logger.info(
            "refresh_job_completed",
            total=len(results),
            succeeded=sum(1 for r in results if r.success),
            duration_seconds=round(duration, 1),
        )
        for result in results:
            if result.success and result.snapshot and result.snapshot.discount_percent:
                self.logger.info(
                    "discount_detected",
                    name=result.snapshot.name,
                    discount_percent=result.snapshot.discount_percent,
                    current_price=str(result.snapshot.current_price),
                )
        return results

    def get_status(self) -> dict:
        job = self.scheduler.get_job(JOB_ID) if self.scheduler.running else None
        return {
            "running": self.scheduler.running,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
            "last_run": self.last_run_at.isoformat() if self.last_run_at else None,
        }
