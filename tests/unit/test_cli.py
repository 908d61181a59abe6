import json
import os
from contextlib import nullcontext

import pytest
from click.testing import CliRunner
from unittest.mock import MagicMock, patch

from selenium.common.exceptions import ElementNotInteractableException

from drover import __version__
from drover.cli.main import EXIT_BROWSER_UNAVAILABLE, cli
from drover.core.errors import BrowserUnavailable

FAST = ["--timeout", "300", "--page-load-timeout", "300", "--poll-interval", "10"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def script_path(tmp_path):
    path = tmp_path / "adds_two_items.json"
    path.write_text(json.dumps({
        "name": "adds 2 items",
        "commands": [
            {"kind": "visit", "target": "/"},
            {"kind": "find", "target": ".new-todo"},
            {"kind": "type", "payload": "install Cypress{enter}"},
            {"kind": "type", "payload": "start testing{enter}"},
            {"kind": "find", "target": ".todo-list li"},
            {"kind": "assertCount", "payload": 2},
        ],
    }))
    return str(path)


def session_for(page):
    return patch("drover.cli.main.browser_session", return_value=nullcontext(page))


def test_version(runner):
    result = runner.invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_passing_script(runner, page, script_path):
    with session_for(page) as session:
        result = runner.invoke(cli, ["run", script_path, "--base-url", "http://todo.test/", "--no-report", *FAST])

    assert result.exit_code == 0, result.output
    assert "passed" in result.output
    assert page.navigations == ["http://todo.test/"]
    assert session.call_args.kwargs["page_load_timeout_ms"] == 300


def test_run_failing_script_exits_nonzero(runner, make_page, script_path):
    page = make_page(append_limit=1)

    with session_for(page):
        result = runner.invoke(cli, ["run", script_path, "--base-url", "http://todo.test/", "--no-report", *FAST])

    assert result.exit_code == 1
    assert "AssertionTimeout" in result.output
    assert "failed" in result.output


def test_run_writes_report(runner, page, script_path, tmp_path):
    report_dir = str(tmp_path / "reports")

    with session_for(page):
        result = runner.invoke(
            cli, ["run", script_path, "--base-url", "http://todo.test/", "--report-dir", report_dir, *FAST]
        )

    assert result.exit_code == 0, result.output
    runs = os.listdir(report_dir)
    assert len(runs) == 1
    assert os.path.exists(os.path.join(report_dir, runs[0], "report.html"))


def test_run_invalid_script(runner, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"commands": [{"kind": "hover", "target": "#menu"}]}))

    with patch("drover.cli.main.browser_session") as session:
        result = runner.invoke(cli, ["run", str(path)])

    assert result.exit_code == 2
    session.assert_not_called()


def test_run_rejects_inconsistent_timing(runner, script_path):
    with patch("drover.cli.main.browser_session") as session:
        result = runner.invoke(cli, ["run", script_path], env={"DROVER_POLL_INTERVAL_MS": "5000"})

    assert result.exit_code == 2
    session.assert_not_called()


def test_run_without_browser(runner, script_path):
    with patch("drover.cli.main.browser_session", side_effect=BrowserUnavailable("chrome", "chrome not reachable")):
        result = runner.invoke(cli, ["run", script_path, "--no-report"])

    assert result.exit_code == EXIT_BROWSER_UNAVAILABLE


def test_demo_runs_todomvc_scenario(runner, page):
    with session_for(page):
        result = runner.invoke(cli, ["demo", "--url", "http://todo.test/", "--no-report", *FAST])

    assert result.exit_code == 0, result.output
    assert "adds 2 items" in result.output
    assert [item.text for item in page.items] == ["install Cypress", "start testing"]


def test_show_lists_commands(runner, script_path):
    result = runner.invoke(cli, ["show", script_path])

    assert result.exit_code == 0
    assert "6 commands OK" in result.output


def test_doctor(runner):
    result = runner.invoke(cli, ["doctor"])

    assert result.exit_code == 0
    assert "selenium" in result.output


def test_rejected_interaction_fails_the_run_not_the_session(runner, page, tmp_path):
    """A WebDriver error mid-run is a failed command with a report, not a missing browser."""
    page.dispatch_key = MagicMock(side_effect=ElementNotInteractableException("element not interactable"))
    report_dir = str(tmp_path / "reports")

    with session_for(page):
        result = runner.invoke(cli, ["demo", "--url", "http://todo.test/", "--report-dir", report_dir, *FAST])

    assert result.exit_code == 1, result.output
    assert result.exit_code != EXIT_BROWSER_UNAVAILABLE
    assert "BrowserError" in result.output
    assert 'Command: type <subject> "install Cypress{enter}"' in result.output
    runs = os.listdir(report_dir)
    assert len(runs) == 1
    assert os.path.exists(os.path.join(report_dir, runs[0], "report.html"))


def test_run_prints_assertion_summary(runner, page, script_path):
    with session_for(page):
        result = runner.invoke(cli, ["run", script_path, "--base-url", "http://todo.test/", "--no-report", *FAST])

    assert "Assertions: 1 passed, 0 failed" in result.output


def test_failed_run_prints_assertion_summary(runner, make_page, script_path):
    with session_for(make_page(append_limit=1)):
        result = runner.invoke(cli, ["run", script_path, "--base-url", "http://todo.test/", "--no-report", *FAST])

    assert result.exit_code == 1
    assert "Assertions: 0 passed, 1 failed" in result.output


@pytest.mark.parametrize("command", ["run", "show"])
def test_non_utf8_script_is_invalid(runner, tmp_path, command):
    path = tmp_path / "latin1.json"
    path.write_bytes(b'\xff\xfe{"commands": []}')

    with patch("drover.cli.main.browser_session") as session:
        result = runner.invoke(cli, [command, str(path)])

    assert result.exit_code == 2
    assert not isinstance(result.exception, UnicodeDecodeError)
    session.assert_not_called()
