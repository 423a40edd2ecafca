"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tracker.dependencies import get_browser, get_db
from tracker.schemas import HealthCheckResponse
from tracker.scrapers.utils.browser_manager import BrowserManager

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    browser_manager: BrowserManager = Depends(get_browser),
):
    """Return service health status.

    The browser is launched on demand, so "idle" is a healthy state.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {str(e)}"

    browser_status = "running" if browser_manager.is_running else "idle"

    return HealthCheckResponse(
        status="ok" if db_status == "ok" else "degraded",
        database=db_status,
        browser=browser_status,
        services={"database": db_status, "browser": browser_status},
    )
