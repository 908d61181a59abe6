"""
Command Executor - Runs a queue of commands against a live browser.

Each command blocks until its precondition holds or its timeout elapses.
Queries (find, assertions) are re-resolved on every poll so they never act
on a stale view of the page; actions (visit, type, click) run exactly once.
The first failure aborts the rest of the queue.
"""

from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, TYPE_CHECKING
from urllib.parse import urljoin, urlsplit
import logging
import time

from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.support.ui import WebDriverWait

from drover.core.browser import webdriver_detail
from drover.core.commands import Command, CommandKind
from drover.core.config import ExecutorConfig
from drover.core.errors import (
    AssertionTimeout,
    BrowserError,
    DetachedElement,
    DroverError,
    ElementNotFound,
    InvalidCommand,
    NavigationTimeout,
)
from drover.core.keys import parse_key_sequence
from drover.core.outcome import AssertionOutcome, CommandResult, CommandState, RunResult
from drover.layers.sense.subject import Subject, resolve

if TYPE_CHECKING:
    from drover.core.browser import BrowserControl
    from drover.reporters.run_recorder import RunRecorder

logger = logging.getLogger(__name__)

# Errors that mean "the wait window elapsed" rather than a hard failure
TIMEOUT_ERRORS = (NavigationTimeout, ElementNotFound, AssertionTimeout)


class CommandExecutor:
    """
    Execute a script of commands one at a time.

    Commands run strictly in the order they were enqueued. Command N+1 never
    starts before command N has either executed or failed.

    Example:
        >>> executor = CommandExecutor(browser, ExecutorConfig())
        >>> executor.enqueue(visit("http://todomvc.com/examples/react/"))
        >>> executor.enqueue(find(".new-todo"))
        >>> executor.enqueue(type_text("install Cypress{enter}"))
        >>> result = executor.run()
        >>> result.success
        True
    """

    def __init__(
        self,
        browser: "BrowserControl",
        config: Optional[ExecutorConfig] = None,
        recorder: Optional["RunRecorder"] = None,
        name: str = "script",
    ):
        """
        Initialize the executor.

        Args:
            browser: Browser collaborator the commands act on
            config: Timeouts, poll interval and base URL
            recorder: Optional RunRecorder for the run report
            name: Name of the script, used in logs and reports
        """
        self.browser = browser
        self.config = config or ExecutorConfig()
        self.recorder = recorder
        self.name = name
        self._queue: Deque[Command] = deque()
        self._subject: Optional[Subject] = None
        self._handlers: Dict[CommandKind, Callable[[Command, CommandResult], None]] = {
            CommandKind.VISIT: self._visit,
            CommandKind.FIND: self._find,
            CommandKind.TYPE: self._type,
            CommandKind.CLICK: self._click,
            CommandKind.ASSERT_COUNT: self._assert_count,
            CommandKind.ASSERT_TEXT: self._assert_text,
        }

    @property
    def pending(self) -> List[Command]:
        """Commands waiting to run."""
        return list(self._queue)

    @property
    def subject(self) -> Optional[Subject]:
        """Subject produced by the most recent command, if any."""
        return self._subject

    def enqueue(self, command: Command) -> None:
        """Append a command to the queue. Nothing runs until ``run()``."""
        if not isinstance(command, Command):
            raise InvalidCommand(f"expected a Command, got {type(command).__name__}")
        self._queue.append(command)

    def enqueue_all(self, commands: Iterable[Command]) -> None:
        for command in commands:
            self.enqueue(command)

    def run(self) -> RunResult:
        """
        Drain the queue in order.

        Returns:
            RunResult with one CommandResult per enqueued command. Commands
            after a failure are left in the Pending state.
        """
        results = [CommandResult(command) for command in self._queue]
        self._queue.clear()
        self._subject = None

        start_time = datetime.now()
        logger.info(f"Running {self.name!r}: {len(results)} commands")
        if self.recorder:
            self.recorder.log_run_start(self.name, self.config)

        try:
            for index, result in enumerate(results):
                self._run_command(index, result)
                if result.failed:
                    skipped = len(results) - index - 1
                    if skipped:
                        logger.info(f"Aborting {self.name!r}: {skipped} remaining commands not run")
                    break
        except Exception as e:
            if self.recorder:
                self.recorder.log_error(f"Unexpected error: {e}", exception=e)
            raise

        run_result = RunResult(
            name=self.name,
            results=results,
            start_time=start_time,
            end_time=datetime.now(),
        )

        if run_result.success:
            logger.info(f"{self.name!r} passed in {run_result.duration_seconds:.2f}s")
        else:
            logger.error(f"{self.name!r} failed: {run_result.error}")

        if self.recorder:
            run_result.report_path = self.recorder.generate_report(run_result)
        return run_result

    def _run_command(self, index: int, result: CommandResult) -> None:
        """Move one command from Pending to a terminal state."""
        command = result.command
        started = time.monotonic()
        logger.info(f"[{index + 1}] {command.describe()}")
        if self.recorder:
            self.recorder.log_command(index, command)

        result.advance(CommandState.RESOLVING)
        try:
            self._handlers[command.kind](command, result)
        except (DroverError, WebDriverException) as raised:
            e = raised if isinstance(raised, DroverError) else _browser_error(raised)
            e.command = command
            if e.elapsed_ms is None:
                e.elapsed_ms = _elapsed_ms(started)
            result.error = e
            if isinstance(e, TIMEOUT_ERRORS) and result.state == CommandState.RESOLVING:
                result.advance(CommandState.TIMED_OUT)
            result.advance(CommandState.FAILED)
            result.elapsed_ms = _elapsed_ms(started)
            logger.warning(f"[{index + 1}] {e}")
            if self.recorder:
                self.recorder.log_failure(index, result, browser=self.browser)
        finally:
            result.elapsed_ms = _elapsed_ms(started)

        if self.recorder and not result.failed:
            self.recorder.log_result(index, result)

    # --- Command handlers -------------------------------------------------

    def _visit(self, command: Command, result: CommandResult) -> None:
        url = self._resolve_url(command.target)
        timeout_ms = command.timeout_ms or self.config.page_load_timeout_ms
        started = time.monotonic()

        # Side effect: navigate exactly once, then only poll for readiness.
        # The load and the readiness poll share one budget.
        self.browser.navigate(url, timeout_ms)
        self._subject = None

        remaining_ms = timeout_ms - _elapsed_ms(started)
        ready = self._poll(lambda browser: browser.is_ready(), remaining_ms) if remaining_ms > 0 else None
        if not ready:
            raise NavigationTimeout(
                url,
                elapsed_ms=_elapsed_ms(started),
                reason=getattr(self.browser, "navigation_error", None),
            )
        result.advance(CommandState.SATISFIED)
        result.advance(CommandState.EXECUTED)

    def _find(self, command: Command, result: CommandResult) -> None:
        subject = self._wait_for_match(command.target, self._timeout(command))
        result.subject_count = subject.count
        result.advance(CommandState.SATISFIED)
        result.advance(CommandState.EXECUTED)
        self._subject = subject

    def _type(self, command: Command, result: CommandResult) -> None:
        subject = self._action_subject(command)
        keys = parse_key_sequence(command.payload)
        result.subject_count = subject.count
        result.advance(CommandState.SATISFIED)

        for handle in subject.elements:
            for position, key in enumerate(keys, 1):
                try:
                    self.browser.dispatch_key(handle, key)
                except DetachedElement as e:
                    raise DetachedElement(
                        subject.selector,
                        detail=f"removed while typing {key!r} (keystroke {position} of {len(keys)})",
                    ) from e

        result.advance(CommandState.EXECUTED)
        self._subject = subject

    def _click(self, command: Command, result: CommandResult) -> None:
        subject = self._action_subject(command)
        result.subject_count = subject.count
        result.advance(CommandState.SATISFIED)

        for handle in subject.elements:
            try:
                self.browser.click(handle)
            except DetachedElement as e:
                raise DetachedElement(subject.selector, detail="removed before it could be clicked") from e

        result.advance(CommandState.EXECUTED)
        self._subject = subject

    def _assert_count(self, command: Command, result: CommandResult) -> None:
        selector = self._query_selector(command)
        expected = command.payload
        started = time.monotonic()
        last: Optional[Subject] = None

        def count_matches(browser: "BrowserControl") -> Any:
            nonlocal last
            last = resolve(browser, selector)
            return last if last.count == expected else False

        subject = self._poll(count_matches, self._timeout(command))
        actual = last.count if last is not None else 0
        result.outcome = AssertionOutcome(
            passed=bool(subject),
            selector=selector,
            expected=expected,
            actual=actual,
            elapsed_ms=_elapsed_ms(started),
        )
        if not subject:
            raise AssertionTimeout(selector, expected, actual, elapsed_ms=result.outcome.elapsed_ms)

        result.subject_count = subject.count
        result.advance(CommandState.SATISFIED)
        result.advance(CommandState.EXECUTED)
        self._subject = subject

    def _assert_text(self, command: Command, result: CommandResult) -> None:
        selector = self._query_selector(command)
        expected = command.payload
        started = time.monotonic()
        last_texts: List[str] = []

        def contains_text(browser: "BrowserControl") -> Any:
            nonlocal last_texts
            subject = resolve(browser, selector)
            last_texts = [browser.text_of(handle) for handle in subject.elements]
            return subject if any(expected in text for text in last_texts) else False

        # Elements re-rendered between query and read are simply re-queried.
        subject = self._poll(contains_text, self._timeout(command), ignored=(DetachedElement,))
        result.outcome = AssertionOutcome(
            passed=bool(subject),
            selector=selector,
            expected=expected,
            actual=last_texts,
            elapsed_ms=_elapsed_ms(started),
        )
        if not subject:
            raise AssertionTimeout(selector, expected, last_texts, elapsed_ms=result.outcome.elapsed_ms)

        result.subject_count = subject.count
        result.advance(CommandState.SATISFIED)
        result.advance(CommandState.EXECUTED)
        self._subject = subject

    # --- Helpers ----------------------------------------------------------

    def _poll(self, condition: Callable[["BrowserControl"], Any], timeout_ms: float, ignored: tuple = ()) -> Any:
        """
        Re-check ``condition`` every poll interval until it returns a truthy value.

        Returns:
            The truthy value, or ``None`` once ``timeout_ms`` has elapsed
        """
        wait = WebDriverWait(
            self.browser,
            timeout_ms / 1000,
            poll_frequency=self.config.poll_interval_s,
            ignored_exceptions=ignored or None,
        )
        try:
            return wait.until(condition)
        except TimeoutException:
            return None

    def _wait_for_match(self, selector: str, timeout_ms: int) -> Subject:
        """Poll until ``selector`` matches at least one element."""
        started = time.monotonic()

        def matched(browser: "BrowserControl") -> Any:
            subject = resolve(browser, selector)
            return subject if subject.count else False

        subject = self._poll(matched, timeout_ms)
        if subject is None:
            raise ElementNotFound(selector, elapsed_ms=_elapsed_ms(started))
        return subject

    def _action_subject(self, command: Command) -> Subject:
        """Subject for an action: a fresh find on the target, or the current subject."""
        if command.target is not None:
            subject = self._wait_for_match(command.target, self._timeout(command))
            self._subject = subject
            return subject
        if self._subject is None:
            raise InvalidCommand(f"{command.kind.value} has no subject; add a find command before it")
        if self._subject.is_empty:
            raise ElementNotFound(self._subject.selector, elapsed_ms=0)
        return self._subject

    def _query_selector(self, command: Command) -> str:
        """Selector an assertion re-resolves: its own target or the current subject's."""
        if command.target is not None:
            return command.target
        if self._subject is None:
            raise InvalidCommand(f"{command.kind.value} has no subject; add a find command or a selector")
        return self._subject.selector

    def _timeout(self, command: Command) -> int:
        return command.timeout_ms or self.config.command_timeout_ms

    def _resolve_url(self, url: str) -> str:
        """Resolve relative URLs against the configured base URL."""
        if self.config.base_url and not urlsplit(url).scheme:
            return urljoin(self.config.base_url, url)
        return url


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


def _browser_error(error: WebDriverException) -> BrowserError:
    """Wrap a WebDriver error that a browser collaborator let through."""
    wrapped = BrowserError(webdriver_detail(error))
    wrapped.__cause__ = error
    return wrapped
