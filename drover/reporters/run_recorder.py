"""
Run Recorder - Command logging and report generation.

Captures what the executor did, command by command, and writes a JSON run
record plus a self-contained HTML report once the run finishes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import json
import logging
import os

if TYPE_CHECKING:
    from drover.core.commands import Command
    from drover.core.config import ExecutorConfig
    from drover.core.outcome import CommandResult, RunResult

logger = logging.getLogger(__name__)


@dataclass
class LogEntry:
    """A single entry in the run record."""
    timestamp: datetime
    step: Optional[int]
    event_type: str  # 'run', 'command', 'result', 'failure', 'error'
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    screenshot_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "step": self.step,
            "event_type": self.event_type,
            "message": self.message,
            "data": self.data,
            "screenshot_path": self.screenshot_path,
        }


class RunRecorder:
    """
    Records a command run and renders the report.

    Example:
        >>> recorder = RunRecorder("./drover_reports")
        >>> executor = CommandExecutor(browser, config, recorder=recorder)
        >>> result = executor.run()
        >>> result.report_path
        './drover_reports/20261019_101500/report.html'
    """

    RECORD_FILE = "run_record.json"
    REPORT_FILE = "report.html"

    def __init__(
        self,
        output_dir: str = "./drover_reports",
        run_name: Optional[str] = None,
        screenshot_on_failure: bool = True,
    ):
        """
        Initialize the recorder.

        Args:
            output_dir: Directory for reports and screenshots
            run_name: Optional name for this run (defaults to a timestamp)
            screenshot_on_failure: Capture the page when a command fails
        """
        self.output_dir = output_dir
        self.run_name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.screenshot_on_failure = screenshot_on_failure
        self.entries: List[LogEntry] = []
        self.metadata: Dict[str, Any] = {
            "start_time": datetime.now().isoformat(),
            "run_name": self.run_name,
        }

        self.run_dir = os.path.join(output_dir, self.run_name)
        self.screenshots_dir = os.path.join(self.run_dir, "screenshots")
        os.makedirs(self.screenshots_dir, exist_ok=True)

    def _add(self, event_type: str, message: str, step: Optional[int] = None, **data: Any) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(),
            step=step,
            event_type=event_type,
            message=message,
            data=data,
        )
        self.entries.append(entry)
        return entry

    def log_run_start(self, name: str, config: "ExecutorConfig") -> None:
        self.metadata["script"] = name
        self.metadata["config"] = config.to_dict()
        self._add("run", f"Started {name}")

    def log_command(self, step: int, command: "Command") -> None:
        self._add("command", command.describe(), step=step, command=command.to_dict())

    def log_result(self, step: int, result: "CommandResult") -> None:
        message = f"{result.state.value} in {result.elapsed_ms:.0f}ms"
        if result.outcome:
            message += f" - {result.outcome.diff}"
        self._add(
            "result",
            message,
            step=step,
            state=result.state.value,
            elapsed_ms=round(result.elapsed_ms, 1),
            subject_count=result.subject_count,
        )

    def log_failure(self, step: int, result: "CommandResult", browser: Any = None) -> None:
        """Log a failed command, capturing a screenshot when possible."""
        entry = self._add(
            "failure",
            str(result.error),
            step=step,
            state=result.state.value,
            history=[s.value for s in result.history],
            error=result.error.to_dict() if result.error else None,
            outcome=result.outcome.to_dict() if result.outcome else None,
        )
        if self.screenshot_on_failure and browser is not None:
            entry.screenshot_path = self.capture_screenshot(f"step_{step}_failure", browser)

    def log_error(self, message: str, exception: Optional[Exception] = None) -> None:
        self._add("error", message, exception=str(exception) if exception else None)

    def capture_screenshot(self, name: str, browser: Any) -> Optional[str]:
        """
        Capture a screenshot if the browser supports it.

        Returns:
            Path to saved screenshot, or None
        """
        if not hasattr(browser, "save_screenshot"):
            return None
        path = os.path.join(self.screenshots_dir, f"{name}.png")
        try:
            if browser.save_screenshot(path) is False:
                return None
        except Exception as e:
            logger.warning(f"Screenshot {name} failed: {e}")
            return None
        return path

    def generate_report(self, result: "RunResult") -> str:
        """
        Write the JSON run record and the HTML report.

        Returns:
            Path to the HTML report
        """
        self.metadata["end_time"] = datetime.now().isoformat()
        self.metadata["success"] = result.success

        json_path = os.path.join(self.run_dir, self.RECORD_FILE)
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump({
                "metadata": self.metadata,
                "result": result.to_dict(),
                "entries": [e.to_dict() for e in self.entries],
            }, f, indent=2, default=str)

        report_path = os.path.join(self.run_dir, self.REPORT_FILE)
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(self._build_html_report(result))

        logger.info(f"Report written to {report_path}")
        return report_path

    def _build_html_report(self, result: "RunResult") -> str:
        """Build HTML report content."""
        rows_html = ""
        for index, command_result in enumerate(result.results, 1):
            status_class = self._get_status_class(command_result.state.value)
            detail = ""
            if command_result.outcome:
                detail = escape(command_result.outcome.diff)
            if command_result.error:
                detail = escape(str(command_result.error))
            rows_html += f"""
            <tr class="{status_class}">
                <td>{index}</td>
                <td><code>{escape(command_result.command.describe())}</code></td>
                <td>{command_result.state.value}</td>
                <td>{command_result.elapsed_ms:.0f}ms</td>
                <td>{detail}</td>
            </tr>"""

        screenshots_html = ""
        for entry in self.entries:
            if entry.screenshot_path:
                rel_path = os.path.relpath(entry.screenshot_path, self.run_dir)
                screenshots_html += f'<img src="{escape(rel_path)}" alt="{escape(entry.message)}">'

        verdict = "PASSED" if result.success else "FAILED"
        verdict_class = "success" if result.success else "error"

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Drover Run - {escape(result.name)}</title>
    <style>
        :root {{
            --bg-dark: #0d1117;
            --bg-card: #161b22;
            --border: #30363d;
            --text: #c9d1d9;
            --muted: #8b949e;
            --success: #3fb950;
            --error: #f85149;
        }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: var(--bg-dark);
            color: var(--text);
            padding: 2rem;
        }}
        .container {{ max-width: 1100px; margin: 0 auto; }}
        .header {{
            background: var(--bg-card);
            border: 1px solid var(--border);
            border-radius: 12px;
            padding: 1.5rem;
            margin-bottom: 1.5rem;
        }}
        .verdict {{ font-size: 1.5rem; font-weight: bold; }}
        .muted {{ color: var(--muted); }}
        table {{ width: 100%; border-collapse: collapse; background: var(--bg-card); }}
        th, td {{ text-align: left; padding: 0.6rem; border-bottom: 1px solid var(--border); }}
        tr.success td:first-child {{ border-left: 3px solid var(--success); }}
        tr.error td:first-child {{ border-left: 3px solid var(--error); }}
        tr.pending {{ color: var(--muted); }}
        .success .verdict, .verdict.success {{ color: var(--success); }}
        .verdict.error {{ color: var(--error); }}
        img {{ max-width: 480px; margin-top: 1rem; border-radius: 4px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <div class="verdict {verdict_class}">{verdict}: {escape(result.name)}</div>
            <div class="muted">Run {escape(self.run_name)} &middot; {result.executed_count}/{len(result.results)} commands executed &middot; {result.duration_seconds:.2f}s</div>
        </div>
        <table>
            <tr><th>#</th><th>Command</th><th>State</th><th>Elapsed</th><th>Detail</th></tr>
            {rows_html}
        </table>
        {screenshots_html}
    </div>
</body>
</html>"""

    def _get_status_class(self, state: str) -> str:
        """Get CSS class based on command state."""
        if state == "Executed":
            return "success"
        if state == "Failed":
            return "error"
        return "pending"
