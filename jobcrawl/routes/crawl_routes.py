import asyncio
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from jobcrawl.core.caching import cache_key, get_cache, set_cache  # pylint: disable=import-error
from jobcrawl.core.config import settings  # pylint: disable=import-error
from jobcrawl.core.errors import InfrastructureError  # pylint: disable=import-error
from jobcrawl.models.job_model import PageResult, SearchQuery  # pylint: disable=import-error
from jobcrawl.services.orchestrator import (  # pylint: disable=import-error
    CrawlOrchestrator,
    build_description_fetcher,
    build_pagination_driver,
)
from jobcrawl.services.page_capability import PageCapability  # pylint: disable=import-error
from jobcrawl.services.search_space import search_space_from_settings  # pylint: disable=import-error
from jobcrawl.services.sinks import CollectingSink  # pylint: disable=import-error

logger = logging.getLogger(__name__)

router = APIRouter()

# One browser page shared by all requests. It is created, used and reset only
# while holding the lock, so one crawl runs on it at a time
_driver = None
_page = None
_page_lock = asyncio.Lock()


def get_crawl_page() -> PageCapability:
    """Return the shared browser page, launching the browser on first use. Call with _page_lock held."""
    global _driver, _page  # pylint: disable=global-statement
    if _page is None:
        from jobcrawl.core.browser import create_driver
        from jobcrawl.services.selenium_page import SeleniumPage

        _driver = create_driver(
            headless=settings.HEADLESS,
            user_agent=settings.USER_AGENT,
            accept_language=settings.ACCEPT_LANGUAGE,
        )
        _page = SeleniumPage(_driver, navigation_timeout_ms=settings.NAVIGATION_TIMEOUT_MS)
    return _page


def get_page_provider() -> Callable[[], PageCapability]:
    return get_crawl_page


def shutdown_crawl_page() -> None:
    """Close the shared browser, if one was launched."""
    global _driver, _page  # pylint: disable=global-statement
    if _page is not None:
        from jobcrawl.core.browser import close_driver

        _page.close()
        close_driver(_driver)
    _driver = None
    _page = None


@router.get("/search-space", response_model=List[SearchQuery])
async def get_search_space():
    """List the (technology, location) queries a full crawl walks through, in crawl order."""
    try:
        return search_space_from_settings(settings)
    except ValueError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/jobs", response_model=List[PageResult])
async def get_jobs(
    query: str = Query(..., description="Search term, e.g. 'React'"),
    location: Optional[str] = Query(None, description="Location filter, e.g. 'Spain'. Omit for no filter"),
    max_pages: int = Query(1, ge=1, le=40, description="Maximum number of listing pages to crawl"),
    page_provider: Callable[[], PageCapability] = Depends(get_page_provider),
):
    """
    Crawl the listing pages of one query and return one entry per page.

    Pages are crawled in order until an empty page or max_pages is reached.
    Rate limiting and login walls are retried with linear backoff; a page that
    keeps failing is returned with its error set. Only fully successful crawls
    are cached, and a cache hit does not touch the browser.
    """
    search_query = SearchQuery(text=query, location=location or "")
    key = cache_key("jobs", search_query.text, search_query.location, max_pages)
    cached = await get_cache(key)
    if cached is not None:
        return cached

    sink = CollectingSink()
    async with _page_lock:
        try:
            driver = build_pagination_driver(page_provider(), settings)
            driver.max_pages = max_pages
            await CrawlOrchestrator(driver).run([search_query], sink)
        except InfrastructureError as e:
            logger.error(f"Browser unusable, resetting: {e}")
            shutdown_crawl_page()
            raise HTTPException(status_code=503, detail=f"Browser unavailable: {e}")

    if any(result.error is not None for result in sink.results):
        logger.warning(f"Not caching '{search_query.text}' / '{search_query.location}': a page failed")
    else:
        await set_cache(key, sink.results, settings.CACHE_TTL)
    return sink.results


@router.get("/jobs/description")
async def get_job_description(
    url: str = Query(..., description="Posting URL of a job record"),
    page_provider: Callable[[], PageCapability] = Depends(get_page_provider),
):
    """Fetch the description HTML of a single posting. Empty when it could not be loaded."""
    fetcher = build_description_fetcher(settings)
    async with _page_lock:
        try:
            description = await fetcher.fetch_description(page_provider(), url)
        except InfrastructureError as e:
            shutdown_crawl_page()
            raise HTTPException(status_code=503, detail=f"Browser unavailable: {e}")
    return {"url": url, "description": description}
