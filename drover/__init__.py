"""
Drover - Command queue executor for browser tests.

Runs an ordered script of browser commands (visit, find, type,
assertions) against a live page, waiting for asynchronous UI updates
with an explicit poll/timeout policy, and reports pass or fail.
"""

__version__ = "0.1.0"

from drover.core.commands import Command, CommandKind, assert_count, assert_text, click, find, type_text, visit
from drover.core.config import ExecutorConfig
from drover.core.outcome import RunResult
from drover.core.script import Script, load_script, run_script
from drover.layers.action import CommandExecutor

__all__ = [
    "Command",
    "CommandExecutor",
    "CommandKind",
    "ExecutorConfig",
    "RunResult",
    "Script",
    "assert_count",
    "assert_text",
    "click",
    "find",
    "load_script",
    "run_script",
    "type_text",
    "visit",
    "__version__",
]
