"""
Shared fixtures: an in-memory TodoMVC page that speaks BrowserControl.

Page time is measured in queries rather than wall-clock time, so a
"slow render" is simply an item that shows up after N more DOM queries.
"""

import time
from typing import Any, List, Optional

import pytest

from drover.core.config import ExecutorConfig
from drover.core.errors import DetachedElement, InvalidSelector

TODO_URL = "http://todo.test/"


class FakeElement:
    def __init__(self, tag: str, text: str = ""):
        self.tag = tag
        self.text = text
        self.value = ""
        self.attached = True
        self.clicks = 0

    def __repr__(self):
        return f"<FakeElement {self.tag} {self.text!r}>"


class FakeTodoPage:
    """
    A TodoMVC app: typing into ``.new-todo`` and pressing Enter appends a
    ``.todo-list li``.

    Args:
        render_delay: Queries that pass before a submitted item appears
        append_limit: Stop appending after this many submissions (buggy app)
        reachable: False makes every navigation fail outright
        ready_after: is_ready() calls before the document reports complete
        detach_after_keys: Remove the input after this many keystrokes
        load_ms: Wall-clock time a navigation blocks for, like a slow driver.get
    """

    def __init__(
        self,
        render_delay: int = 0,
        append_limit: Optional[int] = None,
        reachable: bool = True,
        ready_after: int = 1,
        detach_after_keys: Optional[int] = None,
        load_ms: int = 0,
    ):
        self.render_delay = render_delay
        self.append_limit = append_limit
        self.reachable = reachable
        self.ready_after = ready_after
        self.detach_after_keys = detach_after_keys
        self.load_ms = load_ms

        self.navigations: List[str] = []
        self.navigation_budgets: List[Optional[float]] = []
        self.queries: List[str] = []
        self.keys: List[str] = []
        self.submissions = 0
        self.navigation_error: Optional[str] = None

        self.input = FakeElement("input")
        self.items: List[FakeElement] = []
        self._rendering: List[list] = []  # [queries left, text]
        self._ready_checks = 0

    # BrowserControl

    def navigate(self, url: str, timeout_ms: Optional[float] = None) -> None:
        self.navigations.append(url)
        self.navigation_budgets.append(timeout_ms)
        if self.load_ms:
            time.sleep(self.load_ms / 1000)
        self._ready_checks = 0
        self.navigation_error = None if self.reachable else "net::ERR_NAME_NOT_RESOLVED"

    def is_ready(self) -> bool:
        if not self.reachable or not self.navigations:
            return False
        self._ready_checks += 1
        return self._ready_checks >= self.ready_after

    def query_all(self, selector: str) -> List[Any]:
        if selector.count("[") != selector.count("]") or selector.startswith(("!", ">")):
            raise InvalidSelector(selector, "not a valid selector")
        self.queries.append(selector)
        self._tick()
        if selector == ".new-todo":
            return [self.input] if self.input.attached else []
        if selector == ".todo-list li":
            return list(self.items)
        if selector == ".todo-list li label":
            return list(self.items)
        return []

    def dispatch_key(self, handle: Any, key: str) -> None:
        if not handle.attached:
            raise DetachedElement(detail="stale element reference")
        self.keys.append(key)
        if key == "Enter":
            self._submit(handle)
        elif key == "Backspace":
            handle.value = handle.value[:-1]
        elif len(key) == 1:
            handle.value += key
        if self.detach_after_keys is not None and len(self.keys) >= self.detach_after_keys:
            handle.attached = False

    def click(self, handle: Any) -> None:
        if not handle.attached:
            raise DetachedElement(detail="stale element reference")
        handle.clicks += 1

    def text_of(self, handle: Any) -> str:
        if not handle.attached:
            raise DetachedElement(detail="stale element reference")
        return handle.text

    # Page internals

    def _submit(self, handle: FakeElement) -> None:
        text = handle.value.strip()
        handle.value = ""
        if not text:
            return
        self.submissions += 1
        if self.append_limit is not None and self.submissions > self.append_limit:
            return
        self._rendering.append([self.render_delay, text])
        if self.render_delay == 0:
            self._tick()

    def _tick(self) -> None:
        still_rendering = []
        for pending in self._rendering:
            if pending[0] <= 0:
                self.items.append(FakeElement("li", pending[1]))
            else:
                pending[0] -= 1
                still_rendering.append(pending)
        self._rendering = still_rendering


@pytest.fixture
def page():
    return FakeTodoPage()


@pytest.fixture
def make_page():
    """Factory for pages with non-default behaviour."""
    return FakeTodoPage


@pytest.fixture
def fast_config():
    """Short budgets so timeout paths finish quickly."""
    return ExecutorConfig(command_timeout_ms=300, page_load_timeout_ms=300, poll_interval_ms=10)
