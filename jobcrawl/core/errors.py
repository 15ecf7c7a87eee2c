"""
Error taxonomy for the crawler.

Every error raised by a page fetch carries a ``retryable`` marker that the
condition-driven retry predicate reads. ``InfrastructureError`` does not derive
from ``CrawlError`` and must reach the top of the run uncaught.
"""
from enum import Enum
from typing import Optional


class RetryReason(Enum):
    """Why a failed operation may be attempted again."""
    RATE_LIMITED = "rate_limited"
    SOFT_WALL = "soft_wall"
    TIMEOUT = "timeout"


class CrawlError(Exception):
    """Base class for failures scoped to a single page fetch."""

    retryable = False

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.url = url
        self.status = status


class RetryableError(CrawlError):
    """A condition that may clear up by itself after a delay."""

    retryable = True
    reason: RetryReason = RetryReason.TIMEOUT


class RateLimitedError(RetryableError):
    """HTTP 429 (Too many requests)."""

    reason = RetryReason.RATE_LIMITED

    def __init__(self, url: Optional[str] = None, status: int = 429):
        super().__init__(f"Status {status} (Too many requests)", url=url, status=status)


class SoftWallError(RetryableError):
    """The site redirected to its login interstitial instead of serving content."""

    reason = RetryReason.SOFT_WALL

    def __init__(self, location_href: str, url: Optional[str] = None):
        super().__init__(f"Authwall! locationHref: {location_href}", url=url)
        self.location_href = location_href


class NavigationTimeoutError(RetryableError):
    """The page did not finish loading within the navigation timeout."""

    reason = RetryReason.TIMEOUT


class FatalError(CrawlError):
    """Never retried; ends the fetch of the current page."""


class HttpStatusError(FatalError):
    """Navigation answered with an error status other than 429."""

    def __init__(self, status: int, url: Optional[str] = None):
        super().__init__(f"Unexpected HTTP status {status}", url=url, status=status)


class PageOperationError(FatalError):
    """A browser call failed for a reason other than a timeout."""


class ExtractionItemError(CrawlError):
    """One listing item could not be turned into a record."""

    def __init__(self, item_index: int, reason: str):
        super().__init__(f"Item {item_index}: {reason}")
        self.item_index = item_index
        self.reason = reason


class InfrastructureError(Exception):
    """The page capability itself is unusable; the whole run must stop."""


class BrowserUnavailableError(InfrastructureError):
    """The browser session or window is gone."""


class SinkError(Exception):
    """A sink could not accept a page result."""
