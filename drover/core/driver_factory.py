"""
Driver Factory - WebDriver creation for command runs.

Provides a single interface to create a Chrome or Firefox WebDriver with
the options Drover standardises on, plus a context manager that hands the
executor a ready ``SeleniumBrowser`` and always quits the driver.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Union

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions

from drover.core.browser import SeleniumBrowser, webdriver_detail
from drover.core.config import DEFAULT_PAGE_LOAD_TIMEOUT_MS, SUPPORTED_BROWSERS
from drover.core.errors import BrowserUnavailable

logger = logging.getLogger(__name__)

# Type alias for driver
WebDriverType = Union[webdriver.Chrome, webdriver.Firefox]


def create_driver(
    headless: bool = False,
    browser: str = "chrome",
    page_load_timeout_ms: int = DEFAULT_PAGE_LOAD_TIMEOUT_MS,
    window_size: str = "1280,800",
) -> WebDriverType:
    """
    Create a WebDriver instance.

    Args:
        headless: Run browser in headless mode
        browser: "chrome" or "firefox"
        page_load_timeout_ms: Upper bound for a single ``driver.get``
        window_size: Initial window size as "width,height"

    Returns:
        Configured WebDriver instance

    Example:
        >>> driver = create_driver(headless=True)
        >>> driver.get("http://todomvc.com/examples/react/")
    """
    browser = browser.lower()
    if browser not in SUPPORTED_BROWSERS:
        raise ValueError(f"unsupported browser {browser!r}; choose from {', '.join(SUPPORTED_BROWSERS)}")

    if browser == "firefox":
        driver = _create_firefox_driver(headless, window_size)
    else:
        driver = _create_chrome_driver(headless, window_size)

    driver.set_page_load_timeout(page_load_timeout_ms / 1000)
    logger.debug(f"Created {browser} driver (headless={headless}, page_load_timeout={page_load_timeout_ms}ms)")
    return driver


@contextmanager
def browser_session(
    headless: bool = False,
    browser: str = "chrome",
    page_load_timeout_ms: int = DEFAULT_PAGE_LOAD_TIMEOUT_MS,
) -> Iterator[SeleniumBrowser]:
    """
    Create a driver, yield it wrapped as a ``SeleniumBrowser`` and quit it on exit.

    Raises:
        BrowserUnavailable: if the WebDriver session cannot be started. Errors
            raised inside the ``with`` block are not translated.

    Example:
        >>> with browser_session(headless=True) as browser:
        ...     result = run_script(script, browser, config)
    """
    try:
        driver = create_driver(
            headless=headless,
            browser=browser,
            page_load_timeout_ms=page_load_timeout_ms,
        )
    except WebDriverException as e:
        raise BrowserUnavailable(browser, webdriver_detail(e)) from e
    try:
        yield SeleniumBrowser(driver)
    finally:
        driver.quit()


def _create_chrome_driver(
    headless: bool,
    window_size: str,
) -> webdriver.Chrome:
    """Create a Chrome WebDriver with the common stability options."""
    options = ChromeOptions()

    if headless:
        options.add_argument("--headless=new")

    options.add_argument(f"--window-size={window_size}")
    options.add_argument("--disable-extensions")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--disable-gpu")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])

    return webdriver.Chrome(options=options)


def _create_firefox_driver(
    headless: bool,
    window_size: str,
) -> webdriver.Firefox:
    """Create a Firefox WebDriver."""
    options = FirefoxOptions()

    if headless:
        options.add_argument("-headless")

    width, _, height = window_size.partition(",")
    options.add_argument(f"--width={width}")
    options.add_argument(f"--height={height}")

    return webdriver.Firefox(options=options)
