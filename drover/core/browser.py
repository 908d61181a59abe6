"""
Browser - The browser control capability set used by the executor.

The executor only talks to a ``BrowserControl``. ``SeleniumBrowser`` is the
real implementation; tests substitute an in-memory page. Selenium exceptions
are translated into Drover errors here so nothing above this module needs
to know about WebDriver.
"""

import logging
from typing import Any, List, Optional, Protocol, TYPE_CHECKING, runtime_checkable

from selenium.common.exceptions import (
    InvalidSelectorException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys

from drover.core.errors import BrowserError, DetachedElement, InvalidSelector, NavigationTimeout

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver
    from selenium.webdriver.remote.webelement import WebElement

logger = logging.getLogger(__name__)


@runtime_checkable
class BrowserControl(Protocol):
    """Capabilities the executor needs from a browser."""

    def navigate(self, url: str, timeout_ms: Optional[float] = None) -> None:
        """Start loading ``url``, spending at most ``timeout_ms`` on the load itself."""

    def is_ready(self) -> bool:
        """True once the current document has finished loading."""

    def query_all(self, selector: str) -> List[Any]:
        """Return handles for every element matching a CSS selector."""

    def dispatch_key(self, handle: Any, key: str) -> None:
        """Send one keystroke (a character or a canonical key name) to an element."""

    def click(self, handle: Any) -> None:
        """Click an element."""

    def text_of(self, handle: Any) -> str:
        """Visible text of an element."""


# Canonical key name -> Selenium key code
SELENIUM_KEYS = {
    "Enter": Keys.ENTER,
    "Escape": Keys.ESCAPE,
    "Backspace": Keys.BACKSPACE,
    "Delete": Keys.DELETE,
    "Tab": Keys.TAB,
    "ArrowLeft": Keys.ARROW_LEFT,
    "ArrowRight": Keys.ARROW_RIGHT,
    "ArrowUp": Keys.ARROW_UP,
    "ArrowDown": Keys.ARROW_DOWN,
    "Home": Keys.HOME,
    "End": Keys.END,
}

READY_STATE_SCRIPT = """
    return document.readyState === 'complete'
        && window.location.protocol !== 'chrome-error:'
        && window.location.href.indexOf('about:neterror') !== 0;
"""


class SeleniumBrowser:
    """
    ``BrowserControl`` backed by a Selenium WebDriver.

    Example:
        >>> browser = SeleniumBrowser(create_driver(headless=True))
        >>> browser.navigate("http://todomvc.com/examples/react/")
        >>> browser.query_all(".new-todo")
    """

    def __init__(self, driver: "WebDriver"):
        self.driver = driver
        self._navigation_error: Optional[str] = None

    @property
    def navigation_error(self) -> Optional[str]:
        """Error reported by the last navigation, if it failed outright."""
        return self._navigation_error

    def navigate(self, url: str, timeout_ms: Optional[float] = None) -> None:
        self._navigation_error = None
        try:
            if timeout_ms is not None:
                self.driver.set_page_load_timeout(timeout_ms / 1000)
            self.driver.get(url)
        except TimeoutException as e:
            raise NavigationTimeout(url, reason=_first_line(e.msg)) from e
        except WebDriverException as e:
            # Unreachable hosts fail fast; the page simply never becomes ready.
            self._navigation_error = _first_line(e.msg) or e.__class__.__name__
            logger.warning(f"Navigation to {url} failed: {self._navigation_error}")

    def is_ready(self) -> bool:
        if self._navigation_error:
            return False
        try:
            return bool(self.driver.execute_script(READY_STATE_SCRIPT))
        except WebDriverException as e:
            # A document that is mid-navigation can reject scripts.
            logger.debug(f"Ready-state check failed: {_first_line(e.msg)}")
            return False

    def query_all(self, selector: str) -> List["WebElement"]:
        try:
            return self.driver.find_elements(By.CSS_SELECTOR, selector)
        except InvalidSelectorException as e:
            raise InvalidSelector(selector, _first_line(e.msg)) from e
        except WebDriverException as e:
            raise BrowserError(webdriver_detail(e), selector=selector) from e

    def dispatch_key(self, handle: "WebElement", key: str) -> None:
        try:
            handle.send_keys(SELENIUM_KEYS.get(key, key))
        except StaleElementReferenceException as e:
            raise DetachedElement(detail=_first_line(e.msg)) from e
        except WebDriverException as e:
            raise BrowserError(webdriver_detail(e)) from e

    def click(self, handle: "WebElement") -> None:
        try:
            handle.click()
        except StaleElementReferenceException as e:
            raise DetachedElement(detail=_first_line(e.msg)) from e
        except WebDriverException as e:
            raise BrowserError(webdriver_detail(e)) from e

    def text_of(self, handle: "WebElement") -> str:
        try:
            return handle.text
        except StaleElementReferenceException as e:
            raise DetachedElement(detail=_first_line(e.msg)) from e
        except WebDriverException as e:
            raise BrowserError(webdriver_detail(e)) from e

    def save_screenshot(self, path: str) -> bool:
        return self.driver.save_screenshot(path)


def webdriver_detail(error: WebDriverException) -> str:
    """Exception name plus the headline of its message."""
    headline = _first_line(error.msg)
    name = error.__class__.__name__
    return f"{name}: {headline}" if headline else name


def _first_line(message: Optional[str]) -> str:
    """WebDriver messages carry multi-line stack traces; keep the headline."""
    if not message:
        return ""
    return message.strip().splitlines()[0]
