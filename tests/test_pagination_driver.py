# tests/test_pagination_driver.py
import asyncio

import pytest

from conftest import (
    AUTHWALL_URL,
    BASE_URL,
    FakePage,
    Visit,
    collect,
    keywords_of,
    listing_html,
    listing_route,
    page_index_of,
)
from jobcrawl.core.errors import BrowserUnavailableError, PageOperationError
from jobcrawl.models.job_model import PageRequest, SearchQuery
from jobcrawl.services.description_fetcher import DescriptionFetcher
from jobcrawl.services.page_capability import WaitUntil
from jobcrawl.services.pagination_driver import JOB_SEARCH_SELECTOR

QUERY = SearchQuery(text="Python", location="Spain")


def test_listing_url_encodes_query_and_offset(make_driver):
    driver = make_driver(FakePage(listing_route([])))

    assert driver.listing_url(PageRequest(query=QUERY, page_index=2)) == (
        f"{BASE_URL}?keywords=Python&start=50&location=Spain"
    )
    assert driver.listing_url(PageRequest(query=SearchQuery(text="Ruby on rails"), page_index=0)) == (
        f"{BASE_URL}?keywords=Ruby+on+rails&start=0"
    )


def test_stops_at_first_empty_page(make_driver, recorded_sleep):
    page = FakePage(listing_route([3, 2, 0, 4]))
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert [r.page_index for r in results] == [0, 1]
    assert [len(r.records) for r in results] == [3, 2]
    assert all(r.error is None for r in results)
    # page 3 (index 3) is never requested
    assert [page_index_of(url) for url in page.navigations] == [0, 1, 2]
    assert recorded_sleep.delays == []


def test_every_fetch_sets_headers_and_waits_for_cards(make_driver):
    page = FakePage(listing_route([1]))
    asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert len(page.headers) == len(page.navigations) == 2
    assert set(page.wait_conditions) == {WaitUntil.NETWORK_IDLE}
    assert page.selector_waits[0] == (JOB_SEARCH_SELECTOR, True, 100)


def test_records_are_stamped_with_search_location(make_driver):
    page = FakePage(listing_route([2]))
    [result] = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert result.query == QUERY
    assert {r.country_text for r in result.records} == {"Spain"}


def test_rate_limit_then_success_is_retried(make_driver, recorded_sleep):
    statuses = {0: [429, 429, 200]}

    def route(url):
        index = page_index_of(url)
        if index == 0:
            status = statuses[0].pop(0)
            return Visit(status=status, html=listing_html(2) if status == 200 else "")
        return Visit(cards_visible=False)

    page = FakePage(route)
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert [len(r.records) for r in results] == [2]
    assert recorded_sleep.delays == [1.0, 2.0]


def test_soft_wall_redirect_is_retried(make_driver, recorded_sleep):
    attempts = []

    def route(url):
        if page_index_of(url) == 1:
            attempts.append(url)
            if len(attempts) == 1:
                return Visit(location=AUTHWALL_URL, cards_visible=False)
            return Visit(cards_visible=False)
        return Visit(html=listing_html(1))

    page = FakePage(route)
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert [r.page_index for r in results] == [0]
    assert len(attempts) == 2
    assert recorded_sleep.delays == [1.0]


def test_selector_timeout_without_soft_wall_is_terminal_not_an_error(make_driver, recorded_sleep):
    page = FakePage(lambda url: Visit(cards_visible=False, html=listing_html(3)))
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert results == []
    assert len(page.navigations) == 1
    assert recorded_sleep.delays == []


def test_exhausted_retries_emit_one_failed_page_and_stop(make_driver, recorded_sleep):
    def route(url):
        if page_index_of(url) == 0:
            return Visit(html=listing_html(2))
        return Visit(status=429)

    page = FakePage(route)
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert [(r.page_index, len(r.records)) for r in results] == [(0, 2), (1, 0)]
    assert results[0].error is None
    assert "429" in results[1].error
    # 1 try + 4 retries on page 1, nothing afterwards
    assert [page_index_of(url) for url in page.navigations] == [0, 1, 1, 1, 1, 1]
    assert recorded_sleep.delays == [1.0, 2.0, 3.0, 4.0]


def test_fatal_error_is_not_retried(make_driver, recorded_sleep):
    page = FakePage(lambda url: Visit(error=PageOperationError("net::ERR_NAME_NOT_RESOLVED")))
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert len(results) == 1
    assert results[0].records == []
    assert "ERR_NAME_NOT_RESOLVED" in results[0].error
    assert len(page.navigations) == 1
    assert recorded_sleep.delays == []


def test_http_error_status_is_fatal(make_driver):
    page = FakePage(lambda url: Visit(status=500))
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert len(results) == 1
    assert "500" in results[0].error
    assert len(page.navigations) == 1


def test_infrastructure_failure_propagates(make_driver):
    page = FakePage(lambda url: Visit(error=BrowserUnavailableError("invalid session id")))

    with pytest.raises(BrowserUnavailableError):
        asyncio.run(collect(make_driver(page).iter_pages(QUERY)))


def test_max_pages_caps_the_walk(make_driver):
    page = FakePage(listing_route([5, 5, 5, 5]))
    results = asyncio.run(collect(make_driver(page, max_pages=2).iter_pages(QUERY)))

    assert [r.page_index for r in results] == [0, 1]
    assert len(page.navigations) == 2


def test_start_page_resumes_mid_query(make_driver):
    page = FakePage(listing_route([1, 1, 1]))
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY, start_page=2)))

    assert [r.page_index for r in results] == [2]
    assert [page_index_of(url) for url in page.navigations] == [2, 3]


def test_descriptions_are_fetched_on_the_same_page_before_emission(make_driver, recorded_sleep):
    def route(url):
        if "/jobs/view/" in url:
            return Visit(description=f"<p>about {url.rsplit('-', 1)[-1]}</p>")
        index = page_index_of(url)
        return Visit(html=listing_html(2 if index == 0 else 0), cards_visible=index == 0)

    page = FakePage(route)
    fetcher = DescriptionFetcher(request_headers={"accept-language": "en"}, sleep=recorded_sleep)
    results = asyncio.run(collect(make_driver(page, description_fetcher=fetcher).iter_pages(QUERY)))

    [result] = results
    assert [r.description for r in result.records] == ["<p>about 1000</p>", "<p>about 1001</p>"]
    # listing, two detail pages, then the next listing page is loaded fresh
    assert [("view" if "/jobs/view/" in url else keywords_of(url)) for url in page.navigations] == [
        "Python", "view", "view", "Python",
    ]
    assert page_index_of(page.navigations[-1]) == 1


def test_soft_wall_with_error_status_is_retried_not_fatal(make_driver, recorded_sleep):
    attempts = []

    def route(url):
        index = page_index_of(url)
        if index == 0:
            attempts.append(url)
            if len(attempts) == 1:
                return Visit(status=999, location=AUTHWALL_URL, cards_visible=False)
            return Visit(html=listing_html(2))
        return Visit(cards_visible=False)

    page = FakePage(route)
    results = asyncio.run(collect(make_driver(page).iter_pages(QUERY)))

    assert [(r.page_index, len(r.records), r.error) for r in results] == [(0, 2, None)]
    assert len(attempts) == 2
    assert recorded_sleep.delays == [1.0]
