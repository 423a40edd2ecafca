"""Fake Playwright objects and page fixtures shared by the tests."""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

ZARA_URL = "https://www.zara.com/pt/pt/casaco-de-la-p02753752.html"

ZARA_PRODUCT_HTML = """
<html>
  <head><title>CASACO DE LÃ | ZARA Portugal</title></head>
  <body>
    <div class="product-detail-info">
      <h1 class="product-detail-info__header-name">CASACO DE LÃ</h1>
      <div class="price">
        <span class="price-old"><span class="price-old__amount">49,95 €</span></span>
        <span class="price-current"><span class="price-current__amount">39,95 €</span></span>
      </div>
    </div>
    <div class="product-detail-images">
      <img class="media-image__image" src="//static.zara.net/photos/casaco.jpg" />
    </div>
    <ul class="size-selector-sizes">
      <li class="size-selector-sizes__size size-selector-sizes-size--enabled">
        <button data-qa-action="size-in-stock">
          <div class="size-selector-sizes-size__label">S</div>
        </button>
      </li>
      <li class="size-selector-sizes__size size-selector-sizes-size--enabled">
        <button data-qa-action="size-low-on-stock">
          <div class="size-selector-sizes-size__label">M</div>
        </button>
      </li>
      <li class="size-selector-sizes__size size-selector-sizes__size--disabled">
        <button data-qa-action="size-out-of-stock">
          <div class="size-selector-sizes-size__label">L</div>
        </button>
      </li>
    </ul>
  </body>
</html>
"""

CHALLENGE_HTML = """
<html><body>
  <div id="sec-if-cpt-container"><div class="akam-logo"></div></div>
  <script src="/_sec/verify?provider=interstitial"></script>
</body></html>
"""


def make_response(status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status = status
    return response


def make_page(
    html: str = ZARA_PRODUCT_HTML,
    status: int = 200,
    goto_error: Optional[Exception] = None,
    contents: Optional[list] = None,
) -> MagicMock:
    """Fake Playwright page.

    contents, when given, is returned by successive page.content() calls.
    """
    page = MagicMock()
    if goto_error is not None:
        page.goto = AsyncMock(side_effect=goto_error)
    else:
        page.goto = AsyncMock(return_value=make_response(status))
    if contents is not None:
        page.content = AsyncMock(side_effect=list(contents))
    else:
        page.content = AsyncMock(return_value=html)
    page.wait_for_timeout = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.click = AsyncMock()
    page.route = AsyncMock()
    return page


def make_context(page: Optional[MagicMock] = None, state: Optional[dict] = None) -> MagicMock:
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page or make_page())
    context.storage_state = AsyncMock(
        return_value=state if state is not None else {"cookies": [{"name": "ak_bmsc"}], "origins": []}
    )
    context.add_init_script = AsyncMock()
    context.close = AsyncMock()
    return context


def make_browser(context: Optional[MagicMock] = None) -> MagicMock:
    browser = MagicMock()
    browser.is_connected = MagicMock(return_value=True)
    browser.new_context = AsyncMock(return_value=context or make_context())
    browser.close = AsyncMock()
    return browser
