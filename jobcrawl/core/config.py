from typing import Dict, FrozenSet, List

from pydantic import Field
from pydantic_settings import BaseSettings

from jobcrawl.core.reference_data import COUNTRIES, TAG_VOCABULARY, TECHNOLOGIES


class Settings(BaseSettings):
    PROJECT_NAME: str = "Job Listing Crawler"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    CACHE_TTL: int = 3600  # Cache time-to-live in seconds (1 hour)

    # Listing site settings
    BASE_URL: str = "https://linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search"
    PAGE_SIZE: int = 25  # Results per listing page; the site paginates with start=page*PAGE_SIZE
    USER_AGENT: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ACCEPT_LANGUAGE: str = "en-US,en;q=0.9"
    SOFT_WALL_MARKER: str = "linkedin.com/authwall"  # Location fragment of the login interstitial

    # Browser
    HEADLESS: bool = True
    NAVIGATION_TIMEOUT_MS: int = 30000
    SELECTOR_TIMEOUT_MS: int = 5000

    # Retry / backoff (linear: attempt * base delay)
    MAX_RETRIES: int = 4
    RETRY_BASE_DELAY_MS: int = 1000
    DESCRIPTION_MAX_RETRIES: int = 4
    EXCLUDED_STATUS_CODES: List[int] = Field(default_factory=lambda: [400, 401, 403, 404, 410])

    # Crawl behaviour
    FETCH_DESCRIPTIONS: bool = False
    MAX_PAGES_PER_QUERY: int = 0  # 0 disables the cap; an empty page always ends a query

    # Search space and tagging, JSON lists when given through the environment
    SEARCH_LOCATIONS: List[str] = Field(default_factory=lambda: list(COUNTRIES))
    SEARCH_TECHNOLOGIES: List[str] = Field(default_factory=lambda: list(TECHNOLOGIES))
    TAG_VOCABULARY: List[str] = Field(default_factory=lambda: list(TAG_VOCABULARY))

    OUTPUT_DIR: str = "data"

    class Config:  # pylint: disable=R0903
        env_file = ".env"
        extra = "ignore"  # Ignore extra fields from .env file

    @property
    def request_headers(self) -> Dict[str, str]:
        return {"accept-language": self.ACCEPT_LANGUAGE}

    @property
    def retry_base_delay(self) -> float:
        """Base backoff delay in seconds."""
        return self.RETRY_BASE_DELAY_MS / 1000.0

    @property
    def tag_vocabulary(self) -> FrozenSet[str]:
        return frozenset(token.strip().lower() for token in self.TAG_VOCABULARY if token.strip())

    @property
    def max_pages(self):
        return self.MAX_PAGES_PER_QUERY or None


settings = Settings()
