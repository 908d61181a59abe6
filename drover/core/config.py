"""
Executor configuration.

Timeouts and the poll interval are explicit values rather than hidden
framework defaults, so a run is reproducible from its config alone.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

DEFAULT_COMMAND_TIMEOUT_MS = 4000
DEFAULT_PAGE_LOAD_TIMEOUT_MS = 60000
DEFAULT_POLL_INTERVAL_MS = 50

SUPPORTED_BROWSERS = ("chrome", "firefox")


@dataclass
class ExecutorConfig:
    """Configuration for a single executor run."""
    command_timeout_ms: int = DEFAULT_COMMAND_TIMEOUT_MS  # find / assert budget
    page_load_timeout_ms: int = DEFAULT_PAGE_LOAD_TIMEOUT_MS  # visit budget
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    base_url: Optional[str] = None
    headless: bool = False
    browser: str = "chrome"
    report_dir: str = "./drover_reports"
    screenshot_on_failure: bool = True

    def __post_init__(self):
        for name in ("command_timeout_ms", "page_load_timeout_ms", "poll_interval_ms"):
            value = getattr(self, name)
            if value is None or value <= 0:
                raise ValueError(f"{name} must be positive, got {value!r}")
        if self.poll_interval_ms > self.command_timeout_ms:
            raise ValueError(
                f"poll_interval_ms ({self.poll_interval_ms}) exceeds "
                f"command_timeout_ms ({self.command_timeout_ms})"
            )
        self.browser = self.browser.lower()
        if self.browser not in SUPPORTED_BROWSERS:
            raise ValueError(
                f"unsupported browser {self.browser!r}; choose from {', '.join(SUPPORTED_BROWSERS)}"
            )

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
