import logging
import os
from typing import Optional

import undetected_chromedriver as uc
from selenium_stealth import stealth

logger = logging.getLogger(__name__)

LAUNCH_ARGUMENTS = (
    "--disable-gpu",
    "--disable-dev-shm-usage",
    "--disable-setuid-sandbox",
    "--no-first-run",
    "--no-sandbox",
    "--no-zygote",
    "--window-size=1920,1080",
    "--disable-blink-features=AutomationControlled",
)


def get_chrome_executable_path() -> Optional[str]:
    """
    Get Chrome executable path based on environment.
    Checks CHROME_BIN env var first, then common installation paths.
    """
    chrome_bin = os.environ.get("CHROME_BIN")
    if chrome_bin and os.path.exists(chrome_bin):
        return chrome_bin

    candidates = [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
        "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
        "/Applications/Chromium.app/Contents/MacOS/Chromium",
    ]
    for path in candidates:
        if os.path.exists(path):
            return path

    # Let undetected-chromedriver locate it
    return None


def create_driver(headless: bool = True, user_agent: str = "", accept_language: str = "en-US,en;q=0.9"):
    """
    Launch an undetected Chrome WebDriver for crawling.

    Args:
        headless: Run without a visible window
        user_agent: User-Agent override, empty to keep Chrome's own
        accept_language: Value of the Accept-Language header and browser locale
    """
    options = uc.ChromeOptions()
    for argument in LAUNCH_ARGUMENTS:
        options.add_argument(argument)
    if headless:
        options.add_argument("--headless=new")
    if user_agent:
        options.add_argument(f"user-agent={user_agent}")

    primary_language = accept_language.split(",")[0].strip() or "en-US"
    options.add_argument(f"--lang={primary_language}")

    logger.info(f"Launching Chrome (headless={headless})...")
    driver = uc.Chrome(
        options=options,
        browser_executable_path=get_chrome_executable_path(),
        use_subprocess=True,
    )

    # lang cookie equivalent: ask for English content on every request
    driver.execute_cdp_cmd("Network.enable", {})
    driver.execute_cdp_cmd("Network.setExtraHTTPHeaders", {"headers": {"Accept-Language": accept_language}})
    if user_agent:
        driver.execute_cdp_cmd("Network.setUserAgentOverride", {
            "userAgent": user_agent,
            "acceptLanguage": accept_language,
        })

    stealth(
        driver,
        languages=[primary_language, "en"],
        vendor="Google Inc.",
        platform="MacIntel",
        webgl_vendor="Intel Inc.",
        renderer="Intel Iris OpenGL Engine",
        fix_hairline=True,
    )
    logger.info("WebDriver initialized successfully")
    return driver


def close_driver(driver) -> None:
    """Quit the browser, ignoring a session that is already gone."""
    if driver is None:
        return
    try:
        driver.quit()
    except Exception as e:  # pylint: disable=broad-except
        logger.warning(f"Error while closing browser: {e}")
