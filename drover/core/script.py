"""
Script - A named, ordered list of commands.

Scripts are plain data, so they can be written in Python or loaded from a
JSON file of the form::

    {
      "name": "adds 2 items",
      "commands": [
        {"kind": "visit", "target": "http://todomvc.com/examples/react/"},
        {"kind": "find", "target": ".new-todo"},
        {"kind": "type", "payload": "install Cypress{enter}"}
      ]
    }
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import json
import os

from drover.core.commands import Command
from drover.core.errors import DroverError, InvalidCommand
from drover.layers.action.executor import CommandExecutor

if TYPE_CHECKING:
    from drover.core.browser import BrowserControl
    from drover.core.config import ExecutorConfig
    from drover.core.outcome import RunResult
    from drover.reporters.run_recorder import RunRecorder


@dataclass
class Script:
    """A named test made of commands."""
    name: str
    commands: List[Command] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "commands": [c.to_dict() for c in self.commands],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Script":
        """Create from dictionary, reporting the index of any bad command."""
        if not isinstance(data, dict):
            raise InvalidCommand("script must be an object with 'name' and 'commands'")
        raw_commands = data.get("commands")
        if not isinstance(raw_commands, list):
            raise InvalidCommand("script 'commands' must be a list")

        commands = []
        for index, raw in enumerate(raw_commands):
            try:
                commands.append(Command.from_dict(raw))
            except DroverError as e:
                raise InvalidCommand(f"command #{index + 1}: {e.message}") from e
        return cls(name=str(data.get("name") or "script"), commands=commands)


def load_script(path: str) -> Script:
    """
    Load a script from a JSON file.

    Raises:
        FileNotFoundError: if ``path`` does not exist
        InvalidCommand: if the file is not UTF-8 JSON or not a valid script
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidCommand(f"{path} is not valid JSON: {e}") from e
        except UnicodeDecodeError as e:
            raise InvalidCommand(f"{path} is not UTF-8 text: {e.reason} at byte {e.start}") from e

    script = Script.from_dict(data)
    if not data.get("name"):
        script.name = os.path.splitext(os.path.basename(path))[0]
    return script


def save_script(script: Script, path: str) -> None:
    """Write a script as JSON."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(script.to_dict(), f, indent=2)


def run_script(
    script: Script,
    browser: "BrowserControl",
    config: Optional["ExecutorConfig"] = None,
    recorder: Optional["RunRecorder"] = None,
) -> "RunResult":
    """Build a fresh executor for ``script`` and run it."""
    executor = CommandExecutor(browser, config=config, recorder=recorder, name=script.name)
    executor.enqueue_all(script.commands)
    return executor.run()
