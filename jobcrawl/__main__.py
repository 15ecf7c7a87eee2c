"""
Crawl the whole search space and write one JSON file per listing page.

Usage:
    python -m jobcrawl --no-headless --output-dir data
"""
import argparse
import asyncio
import logging
import sys
from datetime import date

from jobcrawl.core.browser import close_driver, create_driver
from jobcrawl.core.config import settings
from jobcrawl.core.errors import InfrastructureError
from jobcrawl.services.orchestrator import build_orchestrator
from jobcrawl.services.search_space import search_space_from_settings
from jobcrawl.services.selenium_page import SeleniumPage
from jobcrawl.services.sinks import JsonDirectorySink

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger("jobcrawl")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="jobcrawl", description="Crawl job listings for every technology/location pair.")
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=settings.HEADLESS,
        help="Whether or not to run the browser in headless mode (default: %(default)s)",
    )
    parser.add_argument("--output-dir", default=settings.OUTPUT_DIR, help="Directory for the per-page JSON files")
    parser.add_argument(
        "--fetch-descriptions",
        action="store_true",
        default=settings.FETCH_DESCRIPTIONS,
        help="Open every posting to fetch its description (slow)",
    )
    parser.add_argument("--max-pages", type=int, default=settings.MAX_PAGES_PER_QUERY, help="Page cap per query, 0 for none")
    parser.add_argument("--start-query", type=int, default=0, help="Index of the first query to crawl (resume)")
    parser.add_argument("--start-page", type=int, default=0, help="Page index to start the first query from (resume)")
    return parser.parse_args(argv)


async def crawl(args: argparse.Namespace) -> int:
    config = settings.model_copy(update={
        "FETCH_DESCRIPTIONS": args.fetch_descriptions,
        "MAX_PAGES_PER_QUERY": args.max_pages,
    })
    search_space = search_space_from_settings(config)
    sink = JsonDirectorySink(args.output_dir)

    driver = create_driver(headless=args.headless, user_agent=config.USER_AGENT, accept_language=config.ACCEPT_LANGUAGE)
    page = SeleniumPage(driver, navigation_timeout_ms=config.NAVIGATION_TIMEOUT_MS)
    try:
        summary = await build_orchestrator(page, config).run(
            search_space, sink, start_query=args.start_query, start_page=args.start_page
        )
    except InfrastructureError as e:
        logger.error(f"Major error, closing browser... {e}")
        return 1
    finally:
        page.close()
        close_driver(driver)

    logger.info(f"FINISHED: {summary.model_dump_json()}")
    return 0 if not summary.sink_errors else 2


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.info(f"Today date: {date.today().isoformat()}")
    try:
        return asyncio.run(crawl(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, crawl cancelled")
        return 130


if __name__ == "__main__":
    sys.exit(main())
