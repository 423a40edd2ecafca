"""Pytest configuration and shared fixtures."""

import os

# Settings are read at import time; point them at throwaway targets first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REFRESH_ENABLED", "false")
os.environ.setdefault("CRON_SECRET", "")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fakes import make_browser
from tracker.models import Base
from tracker.scrapers.utils.browser_manager import BrowserManager
from tracker.scrapers.utils.session_store import SessionStore


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def session_store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path / "sessions")


@pytest.fixture
def make_manager(session_store):
    """Build a BrowserManager wired to a fake browser, with delays disabled."""

    def _make(browser=None) -> BrowserManager:
        manager = BrowserManager(
            session_store=session_store,
            headless=True,
            proxy_urls=[],
            pre_navigation_delay_ms=(0, 0),
            settle_delay_ms=(0, 0),
            challenge_recheck_ms=0,
        )
        manager._browser = browser or make_browser()
        return manager

    return _make
