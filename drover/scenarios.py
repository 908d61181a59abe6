"""
Built-in scenarios.

The TodoMVC check opens the React TodoMVC demo, types two entries like a
real user and asserts the list shows both.
"""

from drover.core.commands import assert_count, find, type_text, visit
from drover.core.script import Script

TODOMVC_URL = "http://todomvc.com/examples/react/"


def todomvc_adds_two_items(url: str = TODOMVC_URL) -> Script:
    """Script: adds 2 items to a TodoMVC list."""
    return Script(
        name="adds 2 items",
        commands=[
            visit(url),
            find(".new-todo"),
            type_text("install Cypress{enter}"),
            type_text("start testing{enter}"),
            find(".todo-list li"),
            assert_count(2),
        ],
    )


SCENARIOS = {
    "todomvc": todomvc_adds_two_items,
}
