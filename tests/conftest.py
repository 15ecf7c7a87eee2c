# tests/conftest.py
import asyncio
import contextlib
from dataclasses import dataclass
from datetime import date
from typing import Callable, List, Optional
from urllib.parse import parse_qs, urlparse

import pytest

from jobcrawl.core.backoff import condition_retry_policy
from jobcrawl.services.description_fetcher import DESCRIPTION_SCRIPT
from jobcrawl.services.page_capability import NavigationResponse, WaitUntil
from jobcrawl.services.pagination_driver import PaginationDriver
from jobcrawl.services.record_extractor import LISTING_HTML_SCRIPT, RecordExtractor

BASE_URL = "https://linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search"
AUTHWALL_URL = "https://www.linkedin.com/authwall?trk=gf&sessionRedirect=https%3A%2F%2Fwww.linkedin.com"
TODAY = date(2024, 3, 15)
VOCABULARY = frozenset({"react", "java", "python", "angular", "typescript"})


# ---------------------------------------------------------------------
# Listing HTML builders (shape of the guest job search API fragments)
# ---------------------------------------------------------------------
def card_html(
    index: int = 0,
    *,
    title: Optional[str] = "Senior React Developer",
    company: str = "Acme",
    company_url: Optional[str] = "https://www.linkedin.com/company/acme",
    location: Optional[str] = "Madrid, Spain",
    posted: Optional[str] = "2024-03-01",
    fresh: bool = False,
    salary: Optional[str] = None,
    url: Optional[str] = None,
    img: Optional[str] = "https://media.licdn.com/dms/image/acme.png",
) -> str:
    slug = (title or "untitled").lower().replace(" ", "-")
    url = url or f"https://www.linkedin.com/jobs/view/{slug}-at-{company.lower()}-{1000 + index}"
    title_html = f'<h3 class="base-search-card__title">{title}</h3>' if title is not None else ""
    company_html = (
        f'<a class="hidden-nested-link" href="{company_url}">{company}</a>' if company_url else company
    )
    location_html = f'<span class="job-search-card__location">{location}</span>' if location is not None else ""
    salary_html = f'<span class="job-search-card__salary-info">{salary}</span>' if salary is not None else ""
    date_class = "job-search-card__listdate--new" if fresh else "job-search-card__listdate"
    date_html = f'<time class="{date_class}" datetime="{posted}">1 week ago</time>' if posted is not None else ""
    img_html = f'<img data-delayed-url="{img}" alt="{company}">' if img else ""
    return f"""
<li>
  <div class="base-card base-search-card base-search-card--link job-search-card" data-entity-urn="urn:li:jobPosting:{1000 + index}">
    <a class="base-card__full-link" href="{url}"><span class="sr-only">{title or ''}</span></a>
    <div class="search-entity-media">{img_html}</div>
    <div class="base-search-card__info">
      {title_html}
      <h4 class="base-search-card__subtitle">{company_html}</h4>
      <div class="base-search-card__metadata">
        {location_html}
        {salary_html}
        {date_html}
      </div>
    </div>
  </div>
</li>"""


def listing_html(count: int, offset: int = 0) -> str:
    return "".join(card_html(offset + i, title=f"Python Developer {offset + i}") for i in range(count))


# ---------------------------------------------------------------------
# Scripted page
# ---------------------------------------------------------------------
@dataclass
class Visit:
    """What the fake browser shows after navigating to a URL."""
    status: Optional[int] = 200
    location: Optional[str] = None  # defaults to the requested URL
    cards_visible: bool = True
    html: str = ""
    description: str = ""
    error: Optional[BaseException] = None  # raised by navigate()


class FakePage:
    """
    PageCapability stand-in driven by a ``route(url) -> Visit`` function.

    Records every call and fails loudly if two operations overlap.
    """

    def __init__(self, route: Callable[[str], Visit]):
        self.route = route
        self.navigations: List[str] = []
        self.wait_conditions: List[WaitUntil] = []
        self.headers: List[dict] = []
        self.selector_waits: List[tuple] = []
        self.busy = False
        self.visit = Visit()
        self.url = "about:blank"

    @contextlib.asynccontextmanager
    async def _exclusive(self):
        if self.busy:
            raise AssertionError("overlapping operations on the same page")
        self.busy = True
        try:
            await asyncio.sleep(0)
            yield
        finally:
            self.busy = False

    async def set_request_headers(self, headers):
        async with self._exclusive():
            self.headers.append(dict(headers))

    async def navigate(self, url, wait_until=WaitUntil.LOAD):
        async with self._exclusive():
            self.navigations.append(url)
            self.wait_conditions.append(wait_until)
            self.visit = self.route(url)
            if self.visit.error is not None:
                raise self.visit.error
            self.url = self.visit.location or url
            return NavigationResponse(status=self.visit.status)

    async def wait_for_selector(self, selector, *, visible=True, timeout_ms=5000):
        async with self._exclusive():
            self.selector_waits.append((selector, visible, timeout_ms))
            return self.visit.cards_visible

    async def current_location(self):
        async with self._exclusive():
            return self.url

    async def evaluate_in_page(self, script, *args):
        async with self._exclusive():
            if script == LISTING_HTML_SCRIPT:
                return self.visit.html
            if script == DESCRIPTION_SCRIPT:
                return self.visit.description
            raise AssertionError(f"unexpected script: {script!r}")


def page_index_of(url: str, page_size: int = 25) -> int:
    start = parse_qs(urlparse(url).query).get("start", ["0"])[0]
    return int(start) // page_size


def keywords_of(url: str) -> str:
    return parse_qs(urlparse(url).query).get("keywords", [""])[0]


def listing_route(counts: List[int]) -> Callable[[str], Visit]:
    """Route serving ``counts[i]`` cards on page i and empty pages afterwards."""
    def route(url: str) -> Visit:
        index = page_index_of(url)
        count = counts[index] if index < len(counts) else 0
        return Visit(html=listing_html(count, offset=index * 100), cards_visible=count > 0)
    return route


class RecordedSleep:
    """Async sleep replacement that records the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def collect(async_iterable) -> list:
    return [item async for item in async_iterable]


# ---------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def recorded_sleep():
    return RecordedSleep()


@pytest.fixture
def make_driver(recorded_sleep):
    """Factory for a PaginationDriver over a FakePage with test-friendly defaults."""
    def _make(page, **overrides) -> PaginationDriver:
        kwargs = dict(
            base_url=BASE_URL,
            page_size=25,
            request_headers={"accept-language": "en-US,en;q=0.9"},
            selector_timeout_ms=100,
            retry_policy=condition_retry_policy(max_attempts=4, base_delay=1.0),
            sleep=recorded_sleep,
        )
        kwargs.update(overrides)
        return PaginationDriver(page, RecordExtractor(VOCABULARY, today=lambda: TODAY), **kwargs)
    return _make
