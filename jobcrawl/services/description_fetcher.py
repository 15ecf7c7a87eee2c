import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from jobcrawl.core.backoff import RetryPolicy, call_with_retry, generic_retry_policy
from jobcrawl.core.errors import HttpStatusError, InfrastructureError, RateLimitedError, SoftWallError
from jobcrawl.models.job_model import JobRecord
from jobcrawl.services.page_capability import PageCapability, WaitUntil

logger = logging.getLogger(__name__)

DESCRIPTION_CONTAINER_CLASS = "show-more-less-html__markup"

DESCRIPTION_SCRIPT = """
const container = document.getElementsByClassName(arguments[0])[0];
return container && container.innerHTML ? container.innerHTML : '';
"""

STATUS_TOO_MANY_REQUESTS = 429


class DescriptionFetcher:
    """
    Loads a posting's detail page and returns its description HTML.

    The fetch reuses the crawl's page handle. It never raises for page-level
    problems: after the retry budget is spent the failure is logged and an
    empty description is returned.
    """

    def __init__(
        self,
        request_headers: Optional[Dict[str, str]] = None,
        retry_policy: Optional[RetryPolicy] = None,
        soft_wall_marker: str = "linkedin.com/authwall",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.request_headers = dict(request_headers or {})
        self.retry_policy = retry_policy or generic_retry_policy(max_attempts=4)
        self.soft_wall_marker = soft_wall_marker
        self._sleep = sleep

    async def _open_detail_page(self, page: PageCapability, record_url: str) -> None:
        await page.set_request_headers(self.request_headers)
        response = await page.navigate(record_url, WaitUntil.NETWORK_SETTLED)

        status = response.status
        logger.info(f"Description page status {status} for {record_url}")
        if status == STATUS_TOO_MANY_REQUESTS:
            raise RateLimitedError(url=record_url)

        location_href = await page.current_location()
        if self.soft_wall_marker in location_href:
            raise SoftWallError(location_href, url=record_url)
        if status is not None and status >= 400:
            raise HttpStatusError(status, url=record_url)

    async def fetch_description(self, page: PageCapability, record_url: str) -> str:
        try:
            await call_with_retry(
                lambda: self._open_detail_page(page, record_url),
                self.retry_policy,
                description=f"description {record_url}",
                sleep=self._sleep,
            )
            description = await page.evaluate_in_page(DESCRIPTION_SCRIPT, DESCRIPTION_CONTAINER_CLASS)
        except InfrastructureError:
            raise
        except Exception as e:  # pylint: disable=broad-except
            logger.error(f"Description fetch failed for {record_url}: {e}")
            return ""
        return description or ""

    async def enrich(self, page: PageCapability, record: JobRecord) -> JobRecord:
        """Fill ``record.description`` in place and return the record."""
        record.description = await self.fetch_description(page, record.url)
        return record
