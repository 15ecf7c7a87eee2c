"""
Walk the result pages of one search query.

Per page:  set headers -> navigate -> check 429 -> check soft wall -> check status ->
wait for listing cards -> extract.  Rate limiting, soft walls and navigation
timeouts are retried with linear backoff. A page with no records ends the
query. A page that still fails after retries is emitted once with ``error``
set and also ends the query, so the next query starts unaffected.
"""
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

from jobcrawl.core.backoff import RetryPolicy, call_with_retry, condition_retry_policy
from jobcrawl.core.errors import HttpStatusError, InfrastructureError, RateLimitedError, SoftWallError
from jobcrawl.models.job_model import ExtractionResult, PageRequest, PageResult, SearchQuery
from jobcrawl.services.description_fetcher import DescriptionFetcher
from jobcrawl.services.page_capability import PageCapability, WaitUntil
from jobcrawl.services.record_extractor import RecordExtractor

logger = logging.getLogger(__name__)

JOB_SEARCH_SELECTOR = ".job-search-card"
STATUS_TOO_MANY_REQUESTS = 429


class PaginationDriver:
    """Drives one page handle through the listing pages of a query."""

    def __init__(
        self,
        page: PageCapability,
        extractor: RecordExtractor,
        *,
        base_url: str,
        page_size: int = 25,
        request_headers: Optional[Dict[str, str]] = None,
        selector_timeout_ms: int = 5000,
        retry_policy: Optional[RetryPolicy] = None,
        soft_wall_marker: str = "linkedin.com/authwall",
        description_fetcher: Optional[DescriptionFetcher] = None,
        max_pages: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.page = page
        self.extractor = extractor
        self.base_url = base_url
        self.page_size = page_size
        self.request_headers = dict(request_headers or {})
        self.selector_timeout_ms = selector_timeout_ms
        self.retry_policy = retry_policy or condition_retry_policy(max_attempts=4)
        self.soft_wall_marker = soft_wall_marker
        self.description_fetcher = description_fetcher
        self.max_pages = max_pages
        self._sleep = sleep

    def listing_url(self, request: PageRequest) -> str:
        params = {
            "keywords": request.query.text,
            "start": request.page_index * self.page_size,
        }
        if request.query.location:
            params["location"] = request.query.location
        return f"{self.base_url}?{urlencode(params)}"

    async def _raise_if_soft_wall(self, url: str) -> None:
        location_href = await self.page.current_location()
        if self.soft_wall_marker in location_href:
            logger.error(f"Authwall detected: {location_href}")
            raise SoftWallError(location_href, url=url)

    async def fetch_page(self, request: PageRequest) -> ExtractionResult:
        """One attempt at loading and extracting a listing page; no retries."""
        url = self.listing_url(request)
        await self.page.set_request_headers(self.request_headers)
        response = await self.page.navigate(url, WaitUntil.NETWORK_IDLE)

        if response.status == STATUS_TOO_MANY_REQUESTS:
            raise RateLimitedError(url=url)
        # The authwall may come back with an error status of its own
        await self._raise_if_soft_wall(url)
        if response.status is not None and response.status >= 400:
            raise HttpStatusError(response.status, url=url)

        found = await self.page.wait_for_selector(
            JOB_SEARCH_SELECTOR, visible=True, timeout_ms=self.selector_timeout_ms
        )
        if not found:
            # A timeout is only an error when it was caused by the soft wall
            await self._raise_if_soft_wall(url)
            return ExtractionResult()

        return await self.extractor.extract(self.page)

    async def _fetch_with_retry(self, request: PageRequest) -> ExtractionResult:
        return await call_with_retry(
            lambda: self.fetch_page(request),
            self.retry_policy,
            description=f"'{request.query.text}' / '{request.query.location}' page {request.page_index}",
            sleep=self._sleep,
        )

    async def iter_pages(self, query: SearchQuery, start_page: int = 0) -> AsyncIterator[PageResult]:
        """
        Yield one PageResult per non-empty page, in page order.

        The generator is suspended while the consumer handles each result, so
        page N is fully processed before page N+1 is requested.
        """
        request = PageRequest(query=query, page_index=start_page)
        pages_fetched = 0

        while True:
            try:
                extraction = await self._fetch_with_retry(request)
            except InfrastructureError:
                raise
            except Exception as e:  # pylint: disable=broad-except
                logger.error(
                    f"Query '{query.text}' / '{query.location}' failed on page {request.page_index}: {e}"
                )
                yield PageResult(query=query, page_index=request.page_index, records=[], error=str(e))
                return

            pages_fetched += 1
            records = extraction.records
            logger.info(
                f"Query: {query.text}, Location: {query.location}, Page: {request.page_index}, "
                f"nJobs: {len(records)}, url: {self.listing_url(request)}"
            )
            if not records:
                return

            for record in records:
                record.country_text = query.location
                if self.description_fetcher is not None:
                    await self.description_fetcher.enrich(self.page, record)

            yield PageResult(query=query, page_index=request.page_index, records=records)

            if self.max_pages is not None and pages_fetched >= self.max_pages:
                logger.info(f"Reached page cap ({self.max_pages}) for '{query.text}' / '{query.location}'")
                return
            request = request.next()
