"""Tests for the HTTP endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fakes import ZARA_URL
from tracker.config import settings
from tracker.dependencies import get_browser, get_db, get_scraper_service
from tracker.main import app
from tracker.scrapers.base import ProductSnapshot, SizeAvailability
from tracker.scrapers.outcomes import ErrorKind, ScrapeResult, ScrapeStatus, UpsertOutcome
from tracker.scrapers.sites import Site


def make_success(url=ZARA_URL, price="39.95", reference="49.95", previous=None):
    snapshot = ProductSnapshot(
        site=Site.ZARA,
        name="CASACO DE LÃ",
        url=url,
        current_price=Decimal(price),
        reference_price=Decimal(reference) if reference else None,
        sizes=[
            SizeAvailability("S", True),
            SizeAvailability("M", True, low_stock=True),
            SizeAvailability("L", False),
        ],
    )
    changes = UpsertOutcome(
        product_id=uuid4(),
        created=previous is None,
        price_changed=True,
        stock_changed=previous is None,
        previous_price=Decimal(previous) if previous else None,
    )
    return ScrapeResult(
        url=url, status=ScrapeStatus.SUCCESS, site=Site.ZARA, snapshot=snapshot, changes=changes
    )


@pytest.fixture
def scraper():
    service = MagicMock()
    service.scrape = AsyncMock()
    service.refresh_all = AsyncMock(return_value=[])
    service.browser_manager.release = AsyncMock(return_value=True)
    return service


@pytest_asyncio.fixture
async def client(scraper, test_db, tmp_path, monkeypatch):
    async def override_db():
        yield test_db

    browser = MagicMock()
    browser.is_running = False

    monkeypatch.setattr(settings, "DEBUG_HTML_DIR", tmp_path / "debug")
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    app.dependency_overrides[get_scraper_service] = lambda: scraper
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_browser] = lambda: browser

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class TestScrapeEndpoint:
    """Tests for POST /api/v1/scrape."""

    async def test_success(self, client, scraper):
        result = make_success()
        scraper.scrape.return_value = result

        response = await client.post("/api/v1/scrape", json={"url": ZARA_URL})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        data = body["data"]
        assert data["product_id"] == str(result.product_id)
        assert data["created"] is True
        assert data["product"]["name"] == "CASACO DE LÃ"
        assert Decimal(data["product"]["current_price"]) == Decimal("39.95")
        assert data["product"]["discount_percent"] == 20
        assert [s["size"] for s in data["product"]["sizes"]] == ["S", "M", "L"]
        scraper.browser_manager.release.assert_awaited_once()

    @pytest.mark.parametrize(
        "kind, status_code",
        [
            (ErrorKind.BLOCKED, 403),
            (ErrorKind.CHALLENGE, 403),
            (ErrorKind.TIMEOUT, 504),
            (ErrorKind.UNKNOWN, 500),
        ],
    )
    async def test_failure_status_codes(self, client, scraper, kind, status_code):
        scraper.scrape.return_value = ScrapeResult.failed(ZARA_URL, kind, "nope", site=Site.ZARA)

        response = await client.post("/api/v1/scrape", json={"url": ZARA_URL})

        assert response.status_code == status_code
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == kind.value
        assert body["suggestions"] == kind.suggestions

    async def test_parse_error_dumps_html(self, client, scraper, tmp_path):
        scraper.scrape.return_value = ScrapeResult.failed(
            ZARA_URL,
            ErrorKind.PARSE_ERROR,
            "Could not extract product information",
            site=Site.ZARA,
            raw_html="<html>changed layout</html>",
        )

        response = await client.post("/api/v1/scrape", json={"url": ZARA_URL})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "PARSE_ERROR"
        dumps = list((tmp_path / "debug").glob("debug-zara-*.html"))
        assert len(dumps) == 1
        assert dumps[0].read_text(encoding="utf-8") == "<html>changed layout</html>"

    async def test_rejected_url(self, client, scraper):
        scraper.scrape.return_value = ScrapeResult.rejected(
            "https://example.com/x", "Unsupported site. Supported: Zara"
        )

        response = await client.post("/api/v1/scrape", json={"url": "https://example.com/x"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "INVALID_URL"
        assert body["error"]["message"].startswith("Unsupported site")

    async def test_empty_url_fails_validation(self, client, scraper):
        response = await client.post("/api/v1/scrape", json={"url": ""})

        assert response.status_code == 422
        scraper.scrape.assert_not_awaited()


class TestCronEndpoint:
    """Tests for GET /api/v1/cron."""

    async def test_secret_required_when_configured(self, client, scraper, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        assert (await client.get("/api/v1/cron")).status_code == 401
        assert (await client.get("/api/v1/cron", params={"secret": "wrong"})).status_code == 401
        scraper.refresh_all.assert_not_awaited()

        response = await client.get("/api/v1/cron", params={"secret": "s3cret"})
        assert response.status_code == 200

    async def test_nothing_to_refresh(self, client):
        response = await client.get("/api/v1/cron")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["message"] == "No products to refresh"
        assert data["summary"] == []

    async def test_summary_and_alerts(self, client, scraper):
        other_url = "https://www.zara.com/pt/pt/calcas-p01234567.html"
        scraper.refresh_all.return_value = [
            make_success(previous="45.00"),
            ScrapeResult.failed(other_url, ErrorKind.TIMEOUT, "Navigation timeout", site=Site.ZARA),
        ]

        response = await client.get("/api/v1/cron", params={"limit": 5})

        assert response.status_code == 200
        assert scraper.refresh_all.await_args.kwargs["limit"] == 5
        data = response.json()["data"]
        assert data["refreshed"] == 1
        assert data["failed"] == 1
        assert data["message"] == "Refreshed 1/2 products"
        assert [item["success"] for item in data["summary"]] == [True, False]
        assert data["summary"][1]["error_code"] == "TIMEOUT"

        drops = data["alerts"]["price_drops"]
        assert len(drops) == 1
        assert drops[0]["discount_percent"] == 20
        assert Decimal(drops[0]["previous_price"]) == Decimal("45.00")

        stock = data["alerts"]["stock_alerts"]
        assert stock[0]["available_sizes"] == ["S", "M"]
        assert stock[0]["low_stock_sizes"] == ["M"]

    async def test_full_price_without_drop_has_no_price_alert(self, client, scraper):
        scraper.refresh_all.return_value = [make_success(reference=None, previous="39.95")]

        response = await client.get("/api/v1/cron")

        alerts = response.json()["data"]["alerts"]
        assert alerts["price_drops"] == []
        assert len(alerts["stock_alerts"]) == 1


class TestHealthEndpoint:
    async def test_health(self, client):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["browser"] == "idle"
