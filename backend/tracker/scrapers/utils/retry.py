"""Retry policies for scrape attempts.

The scraping core reports failures as ScrapeResult values, so retries are
driven by the result instead of by exceptions.
"""

from typing import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from tracker.scrapers.outcomes import ErrorKind, ScrapeResult

logger = structlog.get_logger(__name__)


def is_transient_failure(result: ScrapeResult) -> bool:
    """Only timeouts are retried; blocks and challenges need a cool-down."""
    return not result.success and result.error_kind == ErrorKind.TIMEOUT


def _log_retry(retry_state: RetryCallState) -> None:
    result = retry_state.outcome.result() if retry_state.outcome else None
    logger.warning(
        "scrape_retrying",
        url=result.url if result else None,
        attempt=retry_state.attempt_number,
        error_kind=result.error_kind.value if result and result.error_kind else None,
    )


def _last_result(retry_state: RetryCallState) -> ScrapeResult:
    return retry_state.outcome.result()


def transient_scrape_retry(attempts: int = 2, wait_seconds: float = 30) -> AsyncRetrying:
    """Build a retrier that repeats a scrape while it keeps timing out.

    When attempts run out, the last ScrapeResult is returned as is.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_result(is_transient_failure),
        before_sleep=_log_retry,
        retry_error_callback=_last_result,
    )


async def scrape_with_retry(
    scrape: Callable[..., Awaitable[ScrapeResult]],
    *args,
    attempts: int = 2,
    wait_seconds: float = 30,
    **kwargs,
) -> ScrapeResult:
    """Call scrape(*args, **kwargs), retrying transient failures."""
    retrying = transient_scrape_retry(attempts=attempts, wait_seconds=wait_seconds)
    return await retrying(scrape, *args, **kwargs)
