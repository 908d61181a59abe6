"""
Key sequences for typed text.

Typed payloads are plain text with brace-delimited special keys, e.g.
``"install Cypress{enter}"``. A newline is shorthand for ``{enter}`` and
``{{}`` types a literal ``{``.
"""

from typing import List

from drover.core.errors import InvalidCommand

# Brace name -> canonical key name
SPECIAL_KEYS = {
    "enter": "Enter",
    "esc": "Escape",
    "backspace": "Backspace",
    "del": "Delete",
    "tab": "Tab",
    "leftarrow": "ArrowLeft",
    "rightarrow": "ArrowRight",
    "uparrow": "ArrowUp",
    "downarrow": "ArrowDown",
    "home": "Home",
    "end": "End",
}

NAMED_KEYS = frozenset(SPECIAL_KEYS.values())

SUBMIT_KEY = "Enter"


def parse_key_sequence(text: str) -> List[str]:
    """
    Split a typed payload into key tokens.

    Args:
        text: Payload such as ``"start testing{enter}"``

    Returns:
        One token per keystroke: single characters, or canonical key names
        (``"Enter"``, ``"Escape"``...) for special sequences.

    Raises:
        InvalidCommand: for unknown or unterminated ``{...}`` sequences.
    """
    tokens: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\n":
            tokens.append(SUBMIT_KEY)
            i += 1
            continue
        if char != "{":
            tokens.append(char)
            i += 1
            continue

        # "{{}" is an escaped opening brace
        if text.startswith("{{}", i):
            tokens.append("{")
            i += 3
            continue

        end = text.find("}", i + 1)
        if end == -1:
            raise InvalidCommand(f"unterminated special key sequence at position {i} in {text!r}")
        name = text[i + 1:end].strip().lower()
        if name not in SPECIAL_KEYS:
            known = ", ".join("{" + k + "}" for k in SPECIAL_KEYS)
            raise InvalidCommand(f"unknown special key {{{name}}} in {text!r}; known keys: {known}")
        tokens.append(SPECIAL_KEYS[name])
        i = end + 1
    return tokens


def is_named_key(token: str) -> bool:
    """True if the token is a special key rather than a literal character."""
    return token in NAMED_KEYS
