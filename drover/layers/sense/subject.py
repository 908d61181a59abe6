"""
Subject - The result of resolving a selector against the current DOM.

A Subject is a snapshot: handles to whatever matched at one instant. It is
recomputed for every poll and never reused once the DOM may have changed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Tuple, TYPE_CHECKING

from drover.core.errors import InvalidSelector

if TYPE_CHECKING:
    from drover.core.browser import BrowserControl


@dataclass(frozen=True)
class Subject:
    """Zero, one or many matched elements plus the selector that produced them."""
    selector: str
    elements: Tuple[Any, ...] = ()
    resolved_at: datetime = field(default_factory=datetime.now)

    @property
    def count(self) -> int:
        return len(self.elements)

    @property
    def is_empty(self) -> bool:
        return not self.elements

    def __str__(self) -> str:
        return f"<Subject {self.selector!r} x{self.count}>"


def resolve(browser: "BrowserControl", selector: str) -> Subject:
    """
    Query the DOM once and return a fresh Subject.

    Raises:
        InvalidSelector: for blank selectors, or selectors the browser rejects
    """
    if not selector or not selector.strip():
        raise InvalidSelector(selector, "selector is empty")
    return Subject(selector=selector, elements=tuple(browser.query_all(selector)))
