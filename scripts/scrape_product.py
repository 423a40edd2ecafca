"""Manual scraper runner for testing and warming up sessions.

Scrapes a single product URL and prints what was extracted. Running with
--visible opens a real browser window, which is how a cold session gets
through a challenge page by hand; the session is saved either way.

Usage:
    python scripts/scrape_product.py "https://www.zara.com/pt/pt/casaco-p12345678.html"
    python scripts/scrape_product.py --visible "<url>"
    python scripts/scrape_product.py --no-save "<url>"
    python scripts/scrape_product.py --all
    python scripts/scrape_product.py --export
"""

import argparse
import asyncio
import json
import os
import sys
import time
from decimal import Decimal
from typing import Optional

# Add backend to path so we can import tracker modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from tracker.config import settings
from tracker.core.logging import configure_logging
from tracker.db.session import async_session_factory, create_tables
from tracker.scrapers.outcomes import ErrorKind, ScrapeResult
from tracker.scrapers.scraper_service import ScrapeOptions, ScraperService
from tracker.scrapers.utils.browser_manager import BrowserManager
from tracker.scrapers.utils.debug_html import save_debug_html
from tracker.services.product_service import ProductService


def _format_price(price: Optional[Decimal]) -> str:
    if price is None:
        return "-"
    return f"€{price:,.2f}"


async def show_all() -> None:
    """Print every tracked product."""
    async with async_session_factory() as db:
        products = await ProductService(db).list_products()

    if not products:
        print("\n📭 No products tracked yet.\n")
        return

    print(f"\n📦 {len(products)} products tracked:\n")
    for i, p in enumerate(products, 1):
        price_info = _format_price(p.current_price)
        if p.reference_price:
            price_info += f" (was {_format_price(p.reference_price)}, -{p.discount_percent}%)"
        available = sum(1 for s in p.sizes if s.available)
        print(f"{i}. {p.name}")
        print(f"   Site: {p.site}")
        print(f"   Price: {price_info}")
        print(f"   Sizes: {available}/{len(p.sizes)} available")
        print(f"   URL: {p.url}")
        print(f"   Last checked: {p.last_checked_at.isoformat()}")
        print()


async def export_all() -> None:
    """Print every product with its history as JSON."""
    async with async_session_factory() as db:
        data = await ProductService(db).export_data()
    print(json.dumps(data.model_dump(mode="json"), indent=2, ensure_ascii=False))


def _print_result(result: ScrapeResult, duration: float, saved: bool) -> None:
    if result.success:
        snapshot = result.snapshot
        print("\n✅ Scrape successful!\n")
        print("=" * 50)
        print(f"  Site:      {snapshot.site.display_name}")
        print(f"  Name:      {snapshot.name}")
        print(f"  Price:     {_format_price(snapshot.current_price)}")
        if snapshot.reference_price:
            print(f"  Old Price: {_format_price(snapshot.reference_price)}")
            print(f"  Discount:  {snapshot.discount_percent}%")
        print("\n  Sizes:")
        if snapshot.sizes:
            for size in snapshot.sizes:
                if not size.available:
                    state = "❌ Sold Out"
                elif size.low_stock:
                    state = "⚠️  Low Stock"
                else:
                    state = "✅ Available"
                print(f"    - {size.size}: {state}")
        else:
            print("    (no sizes found)")
        print(f"\n  Image:     {snapshot.image_url or '(not found)'}")
        print(f"  URL:       {snapshot.url}")
        print(f"  Checked:   {snapshot.captured_at.isoformat()}")
        if saved and result.changes:
            action = "created" if result.changes.created else "updated"
            print(f"  Stored:    {action} ({result.changes.product_id})")
        print("=" * 50)
    else:
        print("\n❌ Scrape failed!\n")
        print("=" * 50)
        print(f"Error Code: {result.error_kind.value if result.error_kind else 'REJECTED'}")
        print(f"Error: {result.error}")
        print("=" * 50)
        if result.error_kind == ErrorKind.PARSE_ERROR:
            path = save_debug_html(result)
            if path:
                print(f"\n📄 Page HTML saved to {path}")
        if result.error_kind:
            print("\n💡 Suggestions:")
            for i, suggestion in enumerate(result.error_kind.suggestions, 1):
                print(f"   {i}. {suggestion}")
            if result.error_kind == ErrorKind.BLOCKED and result.site:
                session_file = settings.SESSIONS_DIR / f"{result.site.value}-session.json"
                print(f"   {len(result.error_kind.suggestions) + 1}. Delete session file: {session_file}")

    print(f"\n⏱️  Duration: {duration:.2f}s\n")


async def scrape(url: str, headless: bool, save: bool) -> int:
    """Scrape one URL and print the outcome.

    Returns:
        Process exit code
    """
    print(f"\n🌐 URL: {url}")
    print(f"🔧 Headless: {headless}")
    print(f"💾 Save to storage: {save}\n")

    browser_manager = BrowserManager(headless=headless)
    start = time.monotonic()
    try:
        async with async_session_factory() as db:
            service = ScraperService(
                browser_manager=browser_manager,
                storage=ProductService(db) if save else None,
            )
            result = await service.scrape(url, ScrapeOptions(headless=headless, persist=save))
    finally:
        await browser_manager.release(force=True)

    _print_result(result, time.monotonic() - start, save)
    return 0 if result.success else 1


async def run(args: argparse.Namespace) -> int:
    await create_tables()

    if args.all:
        await show_all()
        return 0
    if args.export:
        await export_all()
        return 0
    return await scrape(args.url, headless=not args.visible, save=not args.no_save)


def main():
    """Parse arguments and run the scraper."""
    parser = argparse.ArgumentParser(
        description="Scrape a product page and store the result",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/scrape_product.py "https://www.zara.com/pt/pt/casaco-p12345678.html"
  python scripts/scrape_product.py --visible "https://www.zara.com/pt/pt/casaco-p12345678.html"
  python scripts/scrape_product.py --all
        """,
    )

    parser.add_argument("url", nargs="?", help="Product URL to scrape")
    parser.add_argument(
        "--visible",
        action="store_true",
        help="Run the browser in visible mode (not headless)",
    )
    parser.add_argument("--no-save", action="store_true", help="Don't save to storage")
    parser.add_argument("--all", action="store_true", help="Show all tracked products")
    parser.add_argument("--export", action="store_true", help="Export all data as JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    args = parser.parse_args()
    if not (args.url or args.all or args.export):
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
