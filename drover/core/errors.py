"""
Errors - Failure kinds raised while running a command queue.

Every error carries the offending Command (attached by the executor once
the failure is known) so reports can show exactly which step broke.
"""

from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from drover.core.commands import Command


class DroverError(Exception):
    """Base class for all command execution failures."""

    kind = "DroverError"

    def __init__(self, message: str, elapsed_ms: Optional[float] = None):
        super().__init__(message)
        self.message = message
        self.elapsed_ms = elapsed_ms
        self.command: Optional["Command"] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "elapsed_ms": self.elapsed_ms,
            "command": self.command.describe() if self.command else None,
        }

    def __str__(self) -> str:
        if self.command is not None:
            return f"{self.kind}: {self.message} (while running: {self.command.describe()})"
        return f"{self.kind}: {self.message}"


class NavigationTimeout(DroverError):
    """The page never reported ready within the navigation budget."""

    kind = "NavigationTimeout"

    def __init__(self, url: str, elapsed_ms: Optional[float] = None, reason: Optional[str] = None):
        message = f"page {url} did not become ready"
        if elapsed_ms is not None:
            message += f" within {elapsed_ms:.0f}ms"
        if reason:
            message += f" ({reason})"
        super().__init__(message, elapsed_ms)
        self.url = url
        self.reason = reason


class ElementNotFound(DroverError):
    """A selector matched nothing for the whole polling window."""

    kind = "ElementNotFound"

    def __init__(self, selector: str, elapsed_ms: Optional[float] = None):
        message = f"expected to find element {selector!r} but never found it"
        if elapsed_ms is not None:
            message += f" after {elapsed_ms:.0f}ms"
        super().__init__(message, elapsed_ms)
        self.selector = selector


class DetachedElement(DroverError):
    """The element was removed from the DOM while being acted on."""

    kind = "DetachedElement"

    def __init__(self, selector: Optional[str] = None, detail: Optional[str] = None):
        target = f"element {selector!r}" if selector else "element"
        message = f"{target} is detached from the DOM"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.selector = selector


class AssertionTimeout(DroverError):
    """An assertion kept failing until its timeout elapsed."""

    kind = "AssertionTimeout"

    def __init__(self, selector: str, expected: Any, actual: Any, elapsed_ms: Optional[float] = None):
        message = f"{selector!r}: expected {expected!r}, got {actual!r}"
        if elapsed_ms is not None:
            message += f" after {elapsed_ms:.0f}ms"
        super().__init__(message, elapsed_ms)
        self.selector = selector
        self.expected = expected
        self.actual = actual


class InvalidSelector(DroverError):
    """The browser rejected a selector as syntactically invalid."""

    kind = "InvalidSelector"

    def __init__(self, selector: str, detail: Optional[str] = None):
        message = f"invalid selector {selector!r}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.selector = selector


class BrowserError(DroverError):
    """WebDriver refused an interaction, e.g. an element that is not interactable."""

    kind = "BrowserError"

    def __init__(self, detail: str, selector: Optional[str] = None):
        target = f" on {selector!r}" if selector else ""
        super().__init__(f"browser rejected the command{target}: {detail}")
        self.selector = selector
        self.detail = detail


class InvalidCommand(DroverError):
    """A command or script is malformed and cannot be run."""

    kind = "InvalidCommand"


class BrowserUnavailable(DroverError):
    """No WebDriver session could be started."""

    kind = "BrowserUnavailable"

    def __init__(self, browser: str, detail: str):
        super().__init__(f"could not start {browser}: {detail}")
        self.browser = browser
