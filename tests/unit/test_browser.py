import pytest
from unittest.mock import MagicMock, PropertyMock, patch

from selenium.common.exceptions import (
    ElementClickInterceptedException,
    ElementNotInteractableException,
    InvalidSelectorException,
    NoSuchWindowException,
    SessionNotCreatedException,
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys

from drover.core.browser import BrowserControl, SeleniumBrowser
from drover.core.driver_factory import browser_session, create_driver
from drover.core.errors import (
    BrowserError,
    BrowserUnavailable,
    DetachedElement,
    InvalidSelector,
    NavigationTimeout,
)


def test_selenium_browser_satisfies_protocol():
    assert isinstance(SeleniumBrowser(MagicMock()), BrowserControl)


def test_fake_page_satisfies_protocol(page):
    assert isinstance(page, BrowserControl)


def test_navigate_timeout_becomes_navigation_timeout():
    driver = MagicMock()
    driver.get.side_effect = TimeoutException("timeout: Timed out receiving message from renderer\n  (stack)")
    browser = SeleniumBrowser(driver)

    with pytest.raises(NavigationTimeout) as exc_info:
        browser.navigate("http://slow.test/")

    assert exc_info.value.reason == "timeout: Timed out receiving message from renderer"


def test_unreachable_host_is_never_ready():
    """A failed navigation is remembered; the readiness check never passes."""
    driver = MagicMock()
    driver.get.side_effect = WebDriverException("unknown error: net::ERR_NAME_NOT_RESOLVED")
    browser = SeleniumBrowser(driver)

    browser.navigate("http://unreachable.invalid/")

    assert browser.navigation_error == "unknown error: net::ERR_NAME_NOT_RESOLVED"
    assert browser.is_ready() is False
    driver.execute_script.assert_not_called()


def test_is_ready_uses_document_ready_state():
    driver = MagicMock()
    driver.execute_script.return_value = True
    browser = SeleniumBrowser(driver)

    browser.navigate("http://todo.test/")

    assert browser.navigation_error is None
    assert browser.is_ready() is True


def test_is_ready_false_while_document_rejects_scripts():
    driver = MagicMock()
    driver.execute_script.side_effect = WebDriverException("javascript error: document unloaded")

    assert SeleniumBrowser(driver).is_ready() is False


def test_query_all_uses_css_selector():
    driver = MagicMock()
    elements = [MagicMock(), MagicMock()]
    driver.find_elements.return_value = elements

    assert SeleniumBrowser(driver).query_all(".todo-list li") == elements
    driver.find_elements.assert_called_once_with(By.CSS_SELECTOR, ".todo-list li")


def test_invalid_selector_translated():
    driver = MagicMock()
    driver.find_elements.side_effect = InvalidSelectorException("invalid selector: An invalid or illegal selector")

    with pytest.raises(InvalidSelector) as exc_info:
        SeleniumBrowser(driver).query_all("li[")

    assert exc_info.value.selector == "li["


def test_dispatch_key_maps_named_keys():
    element = MagicMock()
    browser = SeleniumBrowser(MagicMock())

    browser.dispatch_key(element, "Enter")
    browser.dispatch_key(element, "a")

    assert [c.args[0] for c in element.send_keys.call_args_list] == [Keys.ENTER, "a"]


@pytest.mark.parametrize("action", ["dispatch_key", "click", "text_of"])
def test_stale_element_becomes_detached(action):
    element = MagicMock()
    element.send_keys.side_effect = StaleElementReferenceException("stale element reference")
    element.click.side_effect = StaleElementReferenceException("stale element reference")
    type(element).text = PropertyMock(side_effect=StaleElementReferenceException("stale element reference"))
    browser = SeleniumBrowser(MagicMock())

    args = (element, "a") if action == "dispatch_key" else (element,)
    with pytest.raises(DetachedElement):
        getattr(browser, action)(*args)


def test_create_driver_sets_page_load_timeout():
    with patch("drover.core.driver_factory.webdriver.Chrome") as chrome:
        driver = create_driver(headless=True, page_load_timeout_ms=15000)

    assert driver is chrome.return_value
    options = chrome.call_args.kwargs["options"]
    assert "--headless=new" in options.arguments
    driver.set_page_load_timeout.assert_called_once_with(15.0)


def test_create_driver_rejects_unknown_browser():
    with pytest.raises(ValueError):
        create_driver(browser="netscape")


def test_browser_session_quits_driver():
    with patch("drover.core.driver_factory.webdriver.Firefox") as firefox:
        with pytest.raises(RuntimeError):
            with browser_session(browser="firefox") as browser:
                assert isinstance(browser, SeleniumBrowser)
                raise RuntimeError("boom")

    firefox.return_value.quit.assert_called_once()


def test_navigate_applies_the_visit_budget_to_the_page_load():
    driver = MagicMock()

    SeleniumBrowser(driver).navigate("http://slow.test/", timeout_ms=100)

    names = [c[0] for c in driver.mock_calls]
    assert names.index("set_page_load_timeout") < names.index("get")
    driver.set_page_load_timeout.assert_called_once_with(0.1)


def test_navigate_without_budget_keeps_driver_timeout():
    driver = MagicMock()

    SeleniumBrowser(driver).navigate("http://todo.test/")

    driver.set_page_load_timeout.assert_not_called()
    driver.get.assert_called_once_with("http://todo.test/")


@pytest.mark.parametrize("action, error", [
    ("dispatch_key", ElementNotInteractableException("element not interactable")),
    ("click", ElementClickInterceptedException("element click intercepted: <div class=\"overlay\">")),
])
def test_rejected_interaction_becomes_browser_error(action, error):
    element = MagicMock()
    element.send_keys.side_effect = error
    element.click.side_effect = error
    browser = SeleniumBrowser(MagicMock())

    args = (element, "a") if action == "dispatch_key" else (element,)
    with pytest.raises(BrowserError) as exc_info:
        getattr(browser, action)(*args)

    assert exc_info.value.detail.startswith(type(error).__name__)


def test_closed_window_during_query_becomes_browser_error():
    driver = MagicMock()
    driver.find_elements.side_effect = NoSuchWindowException("no such window: target window already closed")

    with pytest.raises(BrowserError) as exc_info:
        SeleniumBrowser(driver).query_all(".todo-list li")

    assert exc_info.value.selector == ".todo-list li"
    assert "no such window" in exc_info.value.detail


def test_browser_session_reports_driver_that_cannot_start():
    with patch(
        "drover.core.driver_factory.webdriver.Chrome",
        side_effect=SessionNotCreatedException("session not created: Chrome failed to start"),
    ):
        with pytest.raises(BrowserUnavailable) as exc_info:
            with browser_session(browser="chrome"):
                pass

    assert exc_info.value.browser == "chrome"
    assert "Chrome failed to start" in exc_info.value.message


def test_browser_session_does_not_translate_errors_inside_the_block():
    with patch("drover.core.driver_factory.webdriver.Chrome") as chrome:
        with pytest.raises(NoSuchWindowException):
            with browser_session():
                raise NoSuchWindowException("no such window")

    chrome.return_value.quit.assert_called_once()
