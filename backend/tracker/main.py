"""Tracker backend -- FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from tracker import __version__
from tracker.api.v1.router import api_v1_router
from tracker.config import settings
from tracker.core.logging import configure_logging
from tracker.db.session import async_session_factory, create_tables
from tracker.scrapers.scheduler import RefreshScheduler
from tracker.scrapers.utils.browser_manager import get_browser_manager

configure_logging()
logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[RefreshScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    # Startup
    logger.info("Starting tracker API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    try:
        await create_tables()
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    if settings.REFRESH_ENABLED and settings.ENVIRONMENT != "test":
        scheduler = RefreshScheduler(async_session_factory, get_browser_manager())
        scheduler.start()
        logger.info(
            f"Refresh scheduler started "
            f"({settings.REFRESH_INTERVAL_MIN_MINUTES}-{settings.REFRESH_INTERVAL_MAX_MINUTES} min)"
        )
    else:
        logger.info("Refresh scheduler disabled")

    yield

    # Shutdown
    logger.info("Shutting down tracker API server...")

    if scheduler:
        scheduler.stop()
        scheduler = None

    try:
        await get_browser_manager().release(force=True)
        logger.info("Browser manager stopped")
    except Exception as e:
        logger.warning(f"Error stopping browser manager: {e}")


app = FastAPI(
    title="Inditex Tracker API",
    description="Price and stock tracker for Zara and other Inditex stores",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Inditex Tracker API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
