from typing import Iterable, List

from jobcrawl.core.config import Settings
from jobcrawl.models.job_model import SearchQuery


def enumerate_search_space(locations: Iterable[str], technologies: Iterable[str]) -> List[SearchQuery]:
    """
    Build the ordered list of queries to crawl.

    Locations are the outer loop and technologies the inner one, so every
    technology is crawled for the first location before moving to the next.
    An empty location string means "no location filter". Repeated pairs are
    kept only once, at their first position.

    Raises:
        ValueError: if either list is empty
    """
    locations = list(locations)
    technologies = [tech for tech in technologies if tech.strip()]
    if not locations:
        raise ValueError("At least one location is required (use '' for no location filter)")
    if not technologies:
        raise ValueError("At least one technology or role is required")

    queries = (
        SearchQuery(text=tech.strip(), location=location.strip())
        for location in locations
        for tech in technologies
    )
    return list(dict.fromkeys(queries))


def search_space_from_settings(config: Settings) -> List[SearchQuery]:
    return enumerate_search_space(config.SEARCH_LOCATIONS, config.SEARCH_TECHNOLOGIES)
