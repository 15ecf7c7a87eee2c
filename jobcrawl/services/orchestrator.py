"""
Sequential crawl over the whole search space.

One query is paginated to the end before the next one starts, and every page
result reaches the sink before the next page is requested. Sink failures are
logged and counted; infrastructure failures and cancellation stop the run.
"""
import asyncio
import logging
from typing import Iterable, Optional, Protocol

from jobcrawl.core.backoff import condition_retry_policy, generic_retry_policy
from jobcrawl.core.config import Settings
from jobcrawl.core.errors import SinkError
from jobcrawl.models.job_model import CrawlSummary, PageResult, SearchQuery
from jobcrawl.services.description_fetcher import DescriptionFetcher
from jobcrawl.services.page_capability import PageCapability
from jobcrawl.services.pagination_driver import PaginationDriver
from jobcrawl.services.record_extractor import RecordExtractor

logger = logging.getLogger(__name__)


class Sink(Protocol):
    async def accept(self, result: PageResult) -> None:
        """Take ownership of ``result``; raise SinkError (or OSError) on failure."""
        ...


class CrawlOrchestrator:
    def __init__(self, driver: PaginationDriver):
        self.driver = driver
        self._task: Optional[asyncio.Task] = None

    async def run(
        self,
        search_space: Iterable[SearchQuery],
        sink: Sink,
        *,
        start_query: int = 0,
        start_page: int = 0,
    ) -> CrawlSummary:
        """
        Crawl every query of ``search_space`` in order.

        Args:
            search_space: Ordered queries to crawl
            sink: Receives each PageResult as soon as it is produced
            start_query: Offset of the first query to crawl (resumption)
            start_page: Page index to start from for that first query

        Returns:
            CrawlSummary of the run
        """
        self._task = asyncio.current_task()
        queries = list(search_space)
        summary = CrawlSummary(queries_planned=max(len(queries) - start_query, 0))

        try:
            for offset, query in enumerate(queries):
                if offset < start_query:
                    continue
                first_page = start_page if offset == start_query else 0
                logger.info(f"Crawling '{query.text}' / '{query.location}' ({offset + 1}/{len(queries)})")

                failed = False
                async for result in self.driver.iter_pages(query, first_page):
                    failed = failed or result.error is not None
                    await self._deliver(result, sink, summary)

                if not failed:
                    summary.queries_completed += 1
        finally:
            self._task = None

        logger.info(
            f"Crawl finished: {summary.queries_completed} queries, {summary.pages_emitted} pages, "
            f"{summary.records_emitted} records, {len(summary.failed_queries)} failed queries, "
            f"{summary.sink_errors} sink errors"
        )
        return summary

    async def _deliver(self, result: PageResult, sink: Sink, summary: CrawlSummary) -> None:
        summary.pages_emitted += 1
        summary.records_emitted += len(result.records)
        if result.error is not None:
            summary.failed_queries.append(result.query)

        try:
            await sink.accept(result)
        except (SinkError, OSError) as e:
            summary.sink_errors += 1
            logger.error(
                f"Sink rejected page {result.page_index} of '{result.query.text}' / "
                f"'{result.query.location}': {e}"
            )

    def cancel(self) -> bool:
        """Cancel the running crawl at its next suspension point. Returns False if nothing is running."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        return True


def build_description_fetcher(config: Settings) -> DescriptionFetcher:
    return DescriptionFetcher(
        request_headers=config.request_headers,
        retry_policy=generic_retry_policy(
            max_attempts=config.DESCRIPTION_MAX_RETRIES,
            base_delay=config.retry_base_delay,
            excluded_status_codes=config.EXCLUDED_STATUS_CODES,
        ),
        soft_wall_marker=config.SOFT_WALL_MARKER,
    )


def build_pagination_driver(page: PageCapability, config: Settings) -> PaginationDriver:
    description_fetcher = build_description_fetcher(config) if config.FETCH_DESCRIPTIONS else None

    return PaginationDriver(
        page,
        RecordExtractor(config.tag_vocabulary),
        base_url=config.BASE_URL,
        page_size=config.PAGE_SIZE,
        request_headers=config.request_headers,
        selector_timeout_ms=config.SELECTOR_TIMEOUT_MS,
        retry_policy=condition_retry_policy(max_attempts=config.MAX_RETRIES, base_delay=config.retry_base_delay),
        soft_wall_marker=config.SOFT_WALL_MARKER,
        description_fetcher=description_fetcher,
        max_pages=config.max_pages,
    )


def build_orchestrator(page: PageCapability, config: Settings) -> CrawlOrchestrator:
    return CrawlOrchestrator(build_pagination_driver(page, config))
