"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.db.session import async_session_factory
from tracker.scrapers.scraper_service import ScraperService
from tracker.scrapers.utils.browser_manager import BrowserManager, get_browser_manager
from tracker.services.product_service import ProductService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_browser() -> BrowserManager:
    return get_browser_manager()


def get_scraper_service(
    db: AsyncSession = Depends(get_db),
    browser_manager: BrowserManager = Depends(get_browser),
) -> ScraperService:
    """ScraperService persisting through a request-scoped ProductService."""
    return ScraperService(browser_manager=browser_manager, storage=ProductService(db))
