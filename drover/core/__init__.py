"""Core module - Commands, configuration, browser access and scripts."""

from drover.core.errors import DroverError
from drover.core.config import ExecutorConfig
from drover.core.commands import Command, CommandKind
from drover.core.outcome import CommandResult, CommandState, RunResult
from drover.core.script import Script, load_script, run_script
from drover.core.browser import BrowserControl, SeleniumBrowser
from drover.core.driver_factory import browser_session, create_driver

__all__ = [
    "BrowserControl",
    "Command",
    "CommandKind",
    "CommandResult",
    "CommandState",
    "DroverError",
    "ExecutorConfig",
    "RunResult",
    "Script",
    "SeleniumBrowser",
    "browser_session",
    "create_driver",
    "load_script",
    "run_script",
]
