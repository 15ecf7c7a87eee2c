"""
Turn a rendered listing page into JobRecords.

The browser only hands back the body HTML; all parsing happens here in
parse_listing_html(), a pure function of (html, tag vocabulary, today).
Each top-level element is one listing card and is parsed on its own: a card
that fails is skipped and reported as a diagnostic.
"""
import logging
import re
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from jobcrawl.core.errors import ExtractionItemError
from jobcrawl.models.job_model import (
    UNKNOWN_SALARY,
    ExtractionDiagnostic,
    ExtractionResult,
    JobRecord,
)
from jobcrawl.services.page_capability import PageCapability

logger = logging.getLogger(__name__)

LISTING_HTML_SCRIPT = "return document.body ? document.body.innerHTML : '';"

TITLE_SELECTOR = ".base-search-card__title"
URL_SELECTORS = (".base-card__full-link", ".base-search-card--link")
COMPANY_SELECTOR = ".base-search-card__subtitle"
LOCATION_SELECTOR = ".job-search-card__location"
LISTDATE_SELECTOR = ".job-search-card__listdate"
LISTDATE_NEW_SELECTOR = ".job-search-card__listdate--new"  # posted less than a day ago
SALARY_SELECTOR = ".job-search-card__salary-info"

SALARY_CURRENCY_SYMBOLS = {
    "€": "EUR",
    "$": "USD",
    "£": "GBP",
}

_REMOTE_PATTERN = re.compile(r"remote|no office location", re.IGNORECASE)
_SALARY_NUMBER_PATTERN = re.compile(r"[\d.,]*\d[\d.,]*")


def parse_salary(salary_text: Optional[str]) -> Tuple[float, float, str]:
    """
    Parse a salary blob such as "$65,000.00 - $90,000.00".

    Args:
        salary_text: Text of the salary element, or None if the card has none

    Returns:
        (salary_min, salary_max, currency); unknown bounds are -1
    """
    if salary_text is None:
        return UNKNOWN_SALARY, UNKNOWN_SALARY, ""

    text = salary_text.strip()
    currency = SALARY_CURRENCY_SYMBOLS.get(text[:1], "")

    # Values use US formatting, so every comma is a thousands separator
    bounds: List[float] = []
    for group in _SALARY_NUMBER_PATTERN.findall(text)[:2]:
        try:
            bounds.append(float(group.replace(",", "")))
        except ValueError:
            bounds.append(UNKNOWN_SALARY)

    salary_min = bounds[0] if len(bounds) > 0 else UNKNOWN_SALARY
    salary_max = bounds[1] if len(bounds) > 1 else UNKNOWN_SALARY
    if salary_min != UNKNOWN_SALARY and salary_max != UNKNOWN_SALARY and salary_min > salary_max:
        salary_min, salary_max = salary_max, salary_min
    return salary_min, salary_max, currency


def extract_tags(title: str, url: str, vocabulary: Iterable[str]) -> List[str]:
    """Vocabulary tokens found in the title words and the URL slug, first-seen order, no duplicates."""
    vocabulary = vocabulary if isinstance(vocabulary, (set, frozenset)) else frozenset(vocabulary)
    tags: List[str] = []
    for word in title.split() + url.split("-"):
        token = word.lower()
        if token and token in vocabulary and token not in tags:
            tags.append(token)
    return tags


def is_remote(title: str) -> bool:
    return bool(_REMOTE_PATTERN.search(title))


def parse_posted_date(card: Tag, today: date) -> date:
    """
    Read the posting date from the card's datetime attribute.

    Cards for postings younger than a day carry a separate marker; those are
    dated today. There is no finer precision available.
    """
    listdate = card.select_one(LISTDATE_SELECTOR)
    if listdate is not None:
        return _parse_iso_date(listdate.get("datetime"))

    fresh = card.select_one(LISTDATE_NEW_SELECTOR)
    if fresh is not None:
        try:
            return _parse_iso_date(fresh.get("datetime"))
        except ValueError:
            return today

    raise ValueError("missing posted date marker")


def _parse_iso_date(value: Optional[str]) -> date:
    if not value:
        raise ValueError("empty datetime attribute")
    return datetime.strptime(value.strip(), "%Y-%m-%d").date()


def _required_text(card: Tag, selector: str, item_index: int, field: str) -> str:
    element = card.select_one(selector)
    if element is None:
        raise ExtractionItemError(item_index, f"missing {field}")
    text = element.get_text(strip=True)
    if not text:
        raise ExtractionItemError(item_index, f"empty {field}")
    return text


def _posting_url(card: Tag, item_index: int) -> str:
    for selector in URL_SELECTORS:
        element = card.select_one(selector)
        if element is not None and element.get("href"):
            return element["href"].strip()
    raise ExtractionItemError(item_index, "missing posting URL")


def _entity_id(card: Tag) -> str:
    first_child = card.find(True)
    if first_child is None:
        return ""
    return first_child.get("data-entity-urn") or ""


def parse_listing_item(card: Tag, item_index: int, vocabulary: Iterable[str], today: date) -> JobRecord:
    """Build one JobRecord from a listing card, raising ExtractionItemError on missing required fields."""
    title = _required_text(card, TITLE_SELECTOR, item_index, "title")
    url = _posting_url(card, item_index)

    company_container = card.select_one(COMPANY_SELECTOR)
    if company_container is None:
        raise ExtractionItemError(item_index, "missing company")
    company = company_container.get_text(strip=True)
    if not company:
        raise ExtractionItemError(item_index, "empty company")
    company_link = company_container.find("a")
    company_url = company_link.get("href") if company_link is not None else None

    location = _required_text(card, LOCATION_SELECTOR, item_index, "location")

    try:
        posted_date = parse_posted_date(card, today)
    except ValueError as e:
        raise ExtractionItemError(item_index, f"bad posted date: {e}") from e

    image = card.find("img")
    img = image.get("data-delayed-url") if image is not None else None

    salary_element = card.select_one(SALARY_SELECTOR)
    salary_min, salary_max, currency = parse_salary(
        salary_element.get_text(strip=True) if salary_element is not None else None
    )

    return JobRecord(
        id=_entity_id(card),
        title=title,
        company=company,
        company_url=company_url or None,
        url=url,
        location=location,
        img=img or None,
        remote=is_remote(title),
        posted_date=posted_date,
        scrape_date=today,
        salary_min=salary_min,
        salary_max=salary_max,
        salary_currency=currency,
        tags=extract_tags(title, url, vocabulary),
    )


def _top_level_items(html: str) -> List[Tag]:
    soup = BeautifulSoup(html, "html.parser")
    root = soup.body if soup.body is not None else soup
    return [child for child in root.children if isinstance(child, Tag)]


def parse_listing_html(
    html: str,
    vocabulary: Iterable[str],
    *,
    today: Optional[date] = None,
    source_url: str = "",
) -> ExtractionResult:
    """
    Parse every top-level listing card in ``html``.

    Args:
        html: Inner HTML of the rendered listing page body
        vocabulary: Lowercase tokens allowed as tags
        today: Scrape date (defaults to the current date)
        source_url: Page location, recorded on diagnostics

    Returns:
        ExtractionResult with records in page order and one diagnostic per skipped card
    """
    today = today or date.today()
    vocabulary = frozenset(vocabulary)
    result = ExtractionResult()

    for index, card in enumerate(_top_level_items(html or "")):
        try:
            result.records.append(parse_listing_item(card, index, vocabulary, today))
        except ExtractionItemError as e:
            result.diagnostics.append(ExtractionDiagnostic(item_index=index, reason=e.reason, source_url=source_url))
        except Exception as e:  # pylint: disable=broad-except
            result.diagnostics.append(ExtractionDiagnostic(item_index=index, reason=str(e), source_url=source_url))

    return result


class RecordExtractor:
    """Extracts the records visible on the page's current listing."""

    def __init__(self, tag_vocabulary: Iterable[str], today: Callable[[], date] = date.today):
        self.tag_vocabulary = frozenset(tag_vocabulary)
        self._today = today

    async def extract(self, page: PageCapability) -> ExtractionResult:
        html = await page.evaluate_in_page(LISTING_HTML_SCRIPT)
        source_url = await page.current_location()
        result = parse_listing_html(html or "", self.tag_vocabulary, today=self._today(), source_url=source_url)

        for diagnostic in result.diagnostics:
            logger.warning(
                f"Something went wrong retrieving listing item {diagnostic.item_index} "
                f"on {diagnostic.source_url}: {diagnostic.reason}"
            )
        return result
