# fetchers/steam.py
import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.config import REQUEST_TIMEOUT
from core.context import ObserverContext
from core.errors import FetchError
from core.logger import get_logger
from core.models import (
    FetchProgress,
    Page,
    PageFailed,
    PageFetched,
    PageOutcome,
    Throttled,
)

logger = get_logger(__name__)

TOO_MANY_REQUESTS = 429


def _get(session: requests.Session, url: str, params: dict) -> requests.Response:
    logger.debug("Fetching %s with %s", url, params)
    return session.get(url, params=params, timeout=REQUEST_TIMEOUT)


def _request_page(ctx: ObserverContext, params: dict) -> requests.Response:
    """
    Issue one page request through the shared throttle. Connection errors and
    timeouts are retried with backoff, each attempt queued on the throttle again.
    """
    retrying = Retrying(
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        wait=wait_exponential_jitter(initial=1, max=30),
        stop=stop_after_attempt(max(1, ctx.config.transport_retries)),
        sleep=ctx.sleep,
        reraise=True,
    )
    return retrying(ctx.throttle.submit, _get, ctx.session, ctx.config.api_url, params)


def fetch_page(ctx: ObserverContext, app_id: str, progress: FetchProgress) -> PageOutcome:
    """Request the page starting at progress.fetched and classify the response."""
    params = {
        "appid": app_id,
        "start": progress.fetched,
        "count": ctx.config.page_size,
    }
    try:
        response = _request_page(ctx, params)
    except requests.RequestException as exc:
        return PageFailed(FetchError(
            f"Unable to fetch page #{progress.page_index}: {exc}",
            page_index=progress.page_index,
        ))

    status = response.status_code
    if status == TOO_MANY_REQUESTS:
        return Throttled(status)
    if status != 200:
        return PageFailed(FetchError(
            f"Unable to fetch page #{progress.page_index}: response code was {status}",
            page_index=progress.page_index,
            status=status,
        ))

    try:
        body = response.json()
    except ValueError:
        body = None
    if not body or not isinstance(body, dict):
        return PageFailed(FetchError(
            f"Response is empty (page #{progress.page_index})",
            page_index=progress.page_index,
            status=status,
        ))

    try:
        page = Page.from_json(body)
    except (TypeError, ValueError) as exc:
        return PageFailed(FetchError(
            f"Malformed page #{progress.page_index}: {exc}",
            page_index=progress.page_index,
            status=status,
        ))
    if not page.success:
        return PageFailed(FetchError(
            f"Unable to fetch page #{progress.page_index}: page unsuccessful",
            page_index=progress.page_index,
            status=status,
        ))
    return PageFetched(page)


def fetch_all(ctx: ObserverContext, app_id: str) -> FetchProgress:
    """
    Walk every result page for one app and upsert each page as it arrives.

    A 429 response sleeps for the configured cool down and retries the same
    offset. Any other failure raises FetchError (or PersistenceError from the
    store) and leaves the remaining pages unfetched.
    """
    cfg = ctx.config
    logger.info("Fetching prices for app %s", app_id)
    progress = FetchProgress()

    while not progress.done:
        if cfg.max_pages and progress.page_index > cfg.max_pages:
            raise FetchError(
                f"Giving up on app {app_id} after {cfg.max_pages} pages "
                f"({progress.fetched} of {progress.total} items)",
                page_index=progress.page_index,
            )

        outcome = fetch_page(ctx, app_id, progress)

        if isinstance(outcome, Throttled):
            logger.warning("Made too many requests (%d status code)", outcome.status)
            logger.warning("Retrying in %.0fs", cfg.cool_down)
            ctx.sleep(cfg.cool_down)
            continue

        if isinstance(outcome, PageFailed):
            raise outcome.error

        page = outcome.page
        # The server total is authoritative and may move between pages.
        progress.total = page.total_count

        ctx.store.upsert_page(page.results)

        returned = len(page.results)
        if returned == 0 and not progress.done:
            logger.warning(
                "Page #%d for app %s returned no items while %d of %d remain.",
                progress.page_index, app_id, progress.total - progress.fetched, progress.total,
            )

        progress.advance(returned)
        logger.info(
            "Fetched %d items of %d (%d pages, %d%%)",
            progress.fetched, progress.total, progress.page_index - 1, progress.percent,
        )

    logger.info("Successfully fetched all prices for app %s", app_id)
    return progress
