"""Scrape and cron trigger endpoints.

POST /scrape scrapes one URL and stores it. GET /cron refreshes every
tracked product; when CRON_SECRET is set the caller must pass it as the
``secret`` query parameter.
"""

import secrets
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from tracker.config import settings
from tracker.dependencies import get_scraper_service
from tracker.schemas import (
    ApiResponse,
    CronAlerts,
    CronItem,
    CronResponse,
    ErrorDetail,
    ErrorResponse,
    PriceDropAlert,
    ScrapedProduct,
    ScrapeRequest,
    ScrapeResponse,
    SizeStock,
    StockAlert,
)
from tracker.scrapers.outcomes import ErrorKind, ScrapeResult, ScrapeStatus
from tracker.scrapers.scraper_service import ScrapeOptions, ScraperService
from tracker.scrapers.utils.debug_html import save_debug_html

router = APIRouter()
logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _verify_cron_secret(submitted: Optional[str]) -> None:
    """Raise HTTP 401 if CRON_SECRET is set and does not match."""
    expected = settings.CRON_SECRET
    if not expected:
        return
    if not submitted or not secrets.compare_digest(submitted.encode(), expected.encode()):
        logger.warning("cron_unauthorized")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def _scraped_product(result: ScrapeResult) -> ScrapedProduct:
    snapshot = result.snapshot
    return ScrapedProduct(
        site=snapshot.site.value,
        name=snapshot.name,
        url=snapshot.url,
        current_price=snapshot.current_price,
        reference_price=snapshot.reference_price,
        discount_percent=snapshot.discount_percent,
        image_url=snapshot.image_url,
        sizes=[SizeStock(**s.to_dict()) for s in snapshot.sizes],
        captured_at=snapshot.captured_at,
    )


def _error_response(result: ScrapeResult) -> JSONResponse:
    if result.status == ScrapeStatus.REJECTED:
        code = "INVALID_URL"
        suggestions: List[str] = []
    else:
        kind = result.error_kind or ErrorKind.UNKNOWN
        code = kind.value
        suggestions = kind.suggestions

    body = ErrorResponse(
        error=ErrorDetail(code=code, message=result.error or code, field="url"),
        suggestions=suggestions,
    )
    return JSONResponse(status_code=result.http_status, content=body.model_dump(mode="json"))


def _build_alerts(results: List[ScrapeResult]) -> CronAlerts:
    alerts = CronAlerts()
    for result in results:
        if not result.success or result.snapshot is None:
            continue
        snapshot = result.snapshot
        dropped = result.changes is not None and result.changes.price_dropped(snapshot.current_price)
        if snapshot.discount_percent or dropped:
            alerts.price_drops.append(
                PriceDropAlert(
                    name=snapshot.name,
                    url=snapshot.url,
                    discount_percent=snapshot.discount_percent,
                    current_price=snapshot.current_price,
                    reference_price=snapshot.reference_price,
                    previous_price=result.changes.previous_price if dropped else None,
                )
            )
        if snapshot.available_sizes:
            alerts.stock_alerts.append(
                StockAlert(
                    name=snapshot.name,
                    url=snapshot.url,
                    available_sizes=snapshot.available_sizes,
                    low_stock_sizes=snapshot.low_stock_sizes,
                )
            )
    return alerts


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/scrape",
    response_model=ApiResponse[ScrapeResponse],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def scrape_product(
    body: ScrapeRequest,
    service: ScraperService = Depends(get_scraper_service),
):
    """Scrape a product URL and add or update it in storage.

    Failures map to HTTP codes by kind: blocked and challenge 403,
    timeout 504, parse error 422, anything else 500, rejected URL 400.
    """
    logger.info("scrape_requested", url=body.url)
    try:
        result = await service.scrape(body.url, ScrapeOptions(headless=True, persist=True))
    finally:
        await service.browser_manager.release()

    if not result.success:
        if result.error_kind == ErrorKind.PARSE_ERROR:
            save_debug_html(result)
        return _error_response(result)

    changes = result.changes
    return ApiResponse(
        data=ScrapeResponse(
            product=_scraped_product(result),
            product_id=result.product_id,
            created=changes.created if changes else False,
            price_changed=changes.price_changed if changes else False,
            stock_changed=changes.stock_changed if changes else False,
            message=f"Successfully scraped: {result.snapshot.name}",
        )
    )


@router.get("/cron", response_model=ApiResponse[CronResponse])
async def refresh_tracked_products(
    secret: Optional[str] = Query(None, description="Must match CRON_SECRET when it is set"),
    limit: Optional[int] = Query(None, ge=1, description="Max number of products to refresh"),
    service: ScraperService = Depends(get_scraper_service),
):
    """Refresh every tracked product, newest first.

    Returns per-URL outcomes plus price-drop and stock alerts.
    """
    _verify_cron_secret(secret)

    results = await service.refresh_all(
        limit=limit,
        options=ScrapeOptions(headless=True, persist=True),
        delay_range_ms=settings.cron_delay_range(),
    )
    now = datetime.now(timezone.utc)

    if not results:
        return ApiResponse(data=CronResponse(message="No products to refresh", timestamp=now))

    for result in results:
        if result.error_kind == ErrorKind.PARSE_ERROR:
            save_debug_html(result)

    refreshed = sum(1 for r in results if r.success)
    failed = len(results) - refreshed
    summary = [
        CronItem(
            url=r.url,
            success=r.success,
            name=r.snapshot.name if r.snapshot else None,
            error=r.error,
            error_code=r.error_kind.value if r.error_kind else None,
        )
        for r in results
    ]

    logger.info("cron_refresh_complete", refreshed=refreshed, failed=failed)

    return ApiResponse(
        data=CronResponse(
            message=f"Refreshed {refreshed}/{len(results)} products",
            refreshed=refreshed,
            failed=failed,
            summary=summary,
            alerts=_build_alerts(results),
            timestamp=now,
        )
    )
