"""
PageCapability backed by a Selenium (undetected-chromedriver) driver.

Selenium is blocking, so every call is pushed to a single-worker thread pool;
one worker means at most one browser command is in flight for the page.
"""
import asyncio
import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from selenium.common.exceptions import (
    InvalidSessionIdException,
    NoSuchWindowException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from jobcrawl.core.errors import (
    BrowserUnavailableError,
    NavigationTimeoutError,
    PageOperationError,
)
from jobcrawl.services.page_capability import NavigationResponse, WaitUntil

logger = logging.getLogger(__name__)

NAVIGATION_STATUS_SCRIPT = """
const entry = performance.getEntriesByType('navigation')[0];
return entry && entry.responseStatus ? entry.responseStatus : null;
"""

RESOURCE_COUNT_SCRIPT = "return performance.getEntriesByType('resource').length;"

# Late requests tolerated inside the quiet window for NETWORK_SETTLED
SETTLED_REQUEST_ALLOWANCE = 2


class SeleniumPage:
    """Async page adapter over one WebDriver instance."""

    def __init__(self, driver, navigation_timeout_ms: int = 30000, quiet_window_ms: int = 500):
        self._driver = driver
        self._navigation_timeout = navigation_timeout_ms / 1000.0
        self._quiet_window = quiet_window_ms / 1000.0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="selenium-page")
        self._closed = False

    @property
    def driver(self):
        return self._driver

    async def _call(self, func, *args, **kwargs):
        if self._closed:
            raise BrowserUnavailableError("Browser page was closed")
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))
        except RuntimeError as e:
            # Executor shut down by a concurrent close()
            raise BrowserUnavailableError(f"Browser page was closed: {e}") from e
        try:
            return await future
        except (InvalidSessionIdException, NoSuchWindowException) as e:
            raise BrowserUnavailableError(f"Browser session is gone: {e.msg}") from e
        except TimeoutException as e:
            raise NavigationTimeoutError(f"Browser call timed out: {e.msg}") from e
        except WebDriverException as e:
            raise PageOperationError(f"Browser call failed: {e.msg}") from e

    async def set_request_headers(self, headers: Dict[str, str]) -> None:
        await self._call(self._driver.execute_cdp_cmd, "Network.enable", {})
        await self._call(self._driver.execute_cdp_cmd, "Network.setExtraHTTPHeaders", {"headers": dict(headers)})

    async def navigate(self, url: str, wait_until: WaitUntil = WaitUntil.LOAD) -> NavigationResponse:
        try:
            status = await self._call(self._navigate_sync, url, wait_until)
        except NavigationTimeoutError as e:
            e.url = url
            raise
        return NavigationResponse(status=status)

    def _navigate_sync(self, url: str, wait_until: WaitUntil) -> Optional[int]:
        self._driver.set_page_load_timeout(self._navigation_timeout)
        self._driver.get(url)
        if wait_until is WaitUntil.NETWORK_IDLE:
            self._wait_for_quiet_network(allowance=0)
        elif wait_until is WaitUntil.NETWORK_SETTLED:
            self._wait_for_quiet_network(allowance=SETTLED_REQUEST_ALLOWANCE)
        return self._driver.execute_script(NAVIGATION_STATUS_SCRIPT)

    def _wait_for_quiet_network(self, allowance: int) -> None:
        """Block until fewer than ``allowance`` + 1 resources load during one quiet window."""
        deadline = time.monotonic() + self._navigation_timeout
        previous = self._driver.execute_script(RESOURCE_COUNT_SCRIPT)
        while True:
            time.sleep(self._quiet_window)
            current = self._driver.execute_script(RESOURCE_COUNT_SCRIPT)
            if current - previous <= allowance:
                return
            if time.monotonic() >= deadline:
                raise TimeoutException(f"Network still busy after {self._navigation_timeout:.0f}s")
            previous = current

    async def wait_for_selector(self, selector: str, *, visible: bool = True, timeout_ms: int = 5000) -> bool:
        condition = EC.visibility_of_element_located if visible else EC.presence_of_element_located
        try:
            await self._call(self._wait_sync, condition((By.CSS_SELECTOR, selector)), timeout_ms / 1000.0)
        except NavigationTimeoutError:
            logger.info(f"Selector '{selector}' not found within {timeout_ms}ms")
            return False
        return True

    def _wait_sync(self, condition, timeout: float):
        return WebDriverWait(self._driver, timeout).until(condition)

    async def current_location(self) -> str:
        return await self._call(lambda: self._driver.current_url)

    async def evaluate_in_page(self, script: str, *args: Any) -> Any:
        return await self._call(self._driver.execute_script, script, *args)

    def close(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=False)
