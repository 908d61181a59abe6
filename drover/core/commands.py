"""
Commands - Declarative script steps.

A script is an ordered list of Command records. Each record is a static
description of one browser action or assertion; the executor evaluates it
exactly once per run.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from drover.core.errors import InvalidCommand
from drover.core.keys import parse_key_sequence


class CommandKind(str, Enum):
    """Supported command kinds."""
    VISIT = "visit"
    FIND = "find"
    TYPE = "type"
    CLICK = "click"
    ASSERT_COUNT = "assertCount"
    ASSERT_TEXT = "assertText"

    @classmethod
    def parse(cls, value: Any) -> "CommandKind":
        if isinstance(value, cls):
            return value
        for kind in cls:
            if kind.value == value:
                return kind
        known = ", ".join(k.value for k in cls)
        raise InvalidCommand(f"unknown command kind {value!r}; expected one of: {known}")


# Kinds that act on the current subject when no target is given
CHAINABLE = frozenset({
    CommandKind.TYPE,
    CommandKind.CLICK,
    CommandKind.ASSERT_COUNT,
    CommandKind.ASSERT_TEXT,
})

# Kinds with side effects: executed exactly once, never polled
SIDE_EFFECTS = frozenset({CommandKind.VISIT, CommandKind.TYPE, CommandKind.CLICK})


@dataclass(frozen=True)
class Command:
    """
    A single step of a script.

    Attributes:
        kind: What to do
        target: CSS selector, or URL for ``visit``. ``None`` chains from the
            subject produced by the previous command.
        payload: Text to type, or the expected value of an assertion
        timeout_ms: Per-command wait budget; ``None`` uses the executor default
    """
    kind: CommandKind
    target: Optional[str] = None
    payload: Any = None
    timeout_ms: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "kind", CommandKind.parse(self.kind))
        self._validate()

    def _validate(self) -> None:
        kind = self.kind
        if self.timeout_ms is not None and (
            isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int) or self.timeout_ms <= 0
        ):
            raise InvalidCommand(f"{kind.value}: timeout_ms must be a positive integer, got {self.timeout_ms!r}")

        if kind == CommandKind.VISIT:
            if not isinstance(self.target, str) or not self.target.strip():
                raise InvalidCommand("visit requires a URL")
        elif kind == CommandKind.FIND:
            if not isinstance(self.target, str):
                raise InvalidCommand("find requires a selector")
        elif self.target is not None and not isinstance(self.target, str):
            raise InvalidCommand(f"{kind.value}: selector must be a string, got {self.target!r}")

        if kind == CommandKind.TYPE:
            if not isinstance(self.payload, str) or self.payload == "":
                raise InvalidCommand("type requires non-empty text")
            parse_key_sequence(self.payload)
        elif kind == CommandKind.ASSERT_COUNT:
            if isinstance(self.payload, bool) or not isinstance(self.payload, int) or self.payload < 0:
                raise InvalidCommand(f"assertCount expects a non-negative integer, got {self.payload!r}")
        elif kind == CommandKind.ASSERT_TEXT:
            if not isinstance(self.payload, str):
                raise InvalidCommand(f"assertText expects text, got {self.payload!r}")

    @property
    def chains(self) -> bool:
        """True if this command acts on the previous command's subject."""
        return self.kind in CHAINABLE and self.target is None

    @property
    def has_side_effects(self) -> bool:
        return self.kind in SIDE_EFFECTS

    def describe(self) -> str:
        """One-line human-readable description for logs and reports."""
        parts = [self.kind.value]
        if self.target is not None:
            parts.append(f'"{self.target}"' if self.kind != CommandKind.VISIT else self.target)
        elif self.chains:
            parts.append("<subject>")
        if self.payload is not None:
            if isinstance(self.payload, str):
                parts.append('"' + self.payload.replace("\n", "{enter}") + '"')
            else:
                parts.append(str(self.payload))
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.target is not None:
            data["target"] = self.target
        if self.payload is not None:
            data["payload"] = self.payload
        if self.timeout_ms is not None:
            data["timeout_ms"] = self.timeout_ms
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Command":
        """Create from dictionary."""
        if not isinstance(data, dict):
            raise InvalidCommand(f"command must be an object, got {type(data).__name__}")
        if "kind" not in data:
            raise InvalidCommand("command is missing 'kind'")
        unknown = set(data) - {"kind", "target", "payload", "timeout_ms"}
        if unknown:
            raise InvalidCommand(f"unknown command fields: {', '.join(sorted(unknown))}")
        return cls(
            kind=data["kind"],
            target=data.get("target"),
            payload=data.get("payload"),
            timeout_ms=data.get("timeout_ms"),
        )

    def __str__(self) -> str:
        return self.describe()


def visit(url: str, timeout_ms: Optional[int] = None) -> Command:
    """Navigate to ``url`` and wait for the page to be ready."""
    return Command(CommandKind.VISIT, target=url, timeout_ms=timeout_ms)


def find(selector: str, timeout_ms: Optional[int] = None) -> Command:
    """Poll until ``selector`` matches at least one element."""
    return Command(CommandKind.FIND, target=selector, timeout_ms=timeout_ms)


def type_text(text: str, selector: Optional[str] = None, timeout_ms: Optional[int] = None) -> Command:
    """Type ``text`` (with ``{enter}``-style special keys) into the subject."""
    return Command(CommandKind.TYPE, target=selector, payload=text, timeout_ms=timeout_ms)


def click(selector: Optional[str] = None, timeout_ms: Optional[int] = None) -> Command:
    """Click the subject."""
    return Command(CommandKind.CLICK, target=selector, timeout_ms=timeout_ms)


def assert_count(expected: int, selector: Optional[str] = None, timeout_ms: Optional[int] = None) -> Command:
    """Poll until ``selector`` (or the subject's selector) matches exactly ``expected`` elements."""
    return Command(CommandKind.ASSERT_COUNT, target=selector, payload=expected, timeout_ms=timeout_ms)


def assert_text(expected: str, selector: Optional[str] = None, timeout_ms: Optional[int] = None) -> Command:
    """Poll until some matched element's text contains ``expected``."""
    return Command(CommandKind.ASSERT_TEXT, target=selector, payload=expected, timeout_ms=timeout_ms)
