"""
Outcome - Per-command results and the overall run result.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from drover.core.commands import Command
from drover.core.errors import DroverError


class CommandState(str, Enum):
    """Lifecycle of a single command."""
    PENDING = "Pending"
    RESOLVING = "Resolving"
    SATISFIED = "Satisfied"
    TIMED_OUT = "TimedOut"
    EXECUTED = "Executed"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CommandState.EXECUTED, CommandState.FAILED)


# Allowed state transitions
TRANSITIONS = {
    CommandState.PENDING: {CommandState.RESOLVING},
    CommandState.RESOLVING: {CommandState.SATISFIED, CommandState.TIMED_OUT, CommandState.FAILED},
    CommandState.SATISFIED: {CommandState.EXECUTED, CommandState.FAILED},
    CommandState.TIMED_OUT: {CommandState.FAILED},
    CommandState.EXECUTED: set(),
    CommandState.FAILED: set(),
}


@dataclass
class AssertionOutcome:
    """Pass/fail of an assertion with expected vs. actual."""
    passed: bool
    selector: str
    expected: Any
    actual: Any
    elapsed_ms: float

    @property
    def diff(self) -> str:
        """Human-readable expected/actual comparison."""
        if self.passed:
            return f"{self.selector}: {self.actual!r} as expected"
        return f"{self.selector}: expected {self.expected!r}, got {self.actual!r}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "selector": self.selector,
            "expected": self.expected,
            "actual": self.actual,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "diff": self.diff,
        }


@dataclass
class CommandResult:
    """Result of evaluating one command."""
    command: Command
    history: List[CommandState] = field(default_factory=lambda: [CommandState.PENDING])
    elapsed_ms: float = 0.0
    subject_count: Optional[int] = None
    outcome: Optional[AssertionOutcome] = None
    error: Optional[DroverError] = None

    @property
    def state(self) -> CommandState:
        return self.history[-1]

    def advance(self, state: CommandState) -> None:
        """Move to ``state``, enforcing the command lifecycle."""
        if state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal transition {self.state.value} -> {state.value} for {self.command.describe()}")
        self.history.append(state)

    @property
    def executed(self) -> bool:
        return self.state == CommandState.EXECUTED

    @property
    def failed(self) -> bool:
        return self.state == CommandState.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command.to_dict(),
            "description": self.command.describe(),
            "state": self.state.value,
            "history": [s.value for s in self.history],
            "elapsed_ms": round(self.elapsed_ms, 1),
            "subject_count": self.subject_count,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class RunResult:
    """Result of draining a command queue."""
    name: str
    results: List[CommandResult]
    start_time: datetime
    end_time: datetime
    report_path: Optional[str] = None

    @property
    def success(self) -> bool:
        return all(r.executed for r in self.results)

    @property
    def failed(self) -> Optional[CommandResult]:
        """The command that aborted the run, if any."""
        for result in self.results:
            if result.failed:
                return result
        return None

    @property
    def error(self) -> Optional[DroverError]:
        failed = self.failed
        return failed.error if failed else None

    @property
    def executed_count(self) -> int:
        return sum(1 for r in self.results if r.executed)

    @property
    def skipped(self) -> List[CommandResult]:
        """Commands never evaluated because an earlier one failed."""
        return [r for r in self.results if r.state == CommandState.PENDING]

    @property
    def assertions(self) -> List[AssertionOutcome]:
        return [r.outcome for r in self.results if r.outcome is not None]

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def duration_seconds(self) -> float:
        """Total execution time in seconds."""
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "success": self.success,
            "exit_code": self.exit_code,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": self.duration_seconds,
            "results": [r.to_dict() for r in self.results],
            "report_path": self.report_path,
        }
