"""
Drover CLI - Run command scripts against a real browser.
"""

import logging
import shutil
from importlib.metadata import PackageNotFoundError, version as package_version

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from drover import __version__
from drover.core.config import (
    DEFAULT_COMMAND_TIMEOUT_MS,
    DEFAULT_PAGE_LOAD_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL_MS,
    SUPPORTED_BROWSERS,
    ExecutorConfig,
)
from drover.core.driver_factory import browser_session
from drover.core.errors import AssertionTimeout, BrowserUnavailable, InvalidCommand
from drover.core.outcome import CommandState, RunResult
from drover.core.script import Script, load_script, run_script
from drover.reporters.run_recorder import RunRecorder
from drover.scenarios import TODOMVC_URL, todomvc_adds_two_items

console = Console()
err_console = Console(stderr=True)

EXIT_BROWSER_UNAVAILABLE = 3

STATE_STYLES = {
    CommandState.EXECUTED: "green",
    CommandState.FAILED: "red",
    CommandState.PENDING: "dim",
}


def configure_logging(verbosity: int) -> None:
    """Route log records through rich. 0 = warnings, 1 = info, 2+ = debug."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    # Selenium and urllib3 are chatty at DEBUG
    if level < logging.WARNING:
        logging.getLogger("selenium").setLevel(logging.WARNING)
        logging.getLogger("urllib3").setLevel(logging.WARNING)


def run_options(func):
    """Options shared by every command that launches a browser."""
    options = [
        click.option('--headless/--headed', default=False, envvar='DROVER_HEADLESS',
                     help='Run browser in headless mode'),
        click.option('--browser', 'browser_name', default='chrome', type=click.Choice(SUPPORTED_BROWSERS),
                     help='Browser to drive (default: chrome)'),
        click.option('--base-url', default=None, envvar='DROVER_BASE_URL',
                     help='Base URL that relative visit targets are resolved against'),
        click.option('--timeout', default=DEFAULT_COMMAND_TIMEOUT_MS, type=int, envvar='DROVER_TIMEOUT_MS',
                     help=f'Default find/assert timeout in ms (default: {DEFAULT_COMMAND_TIMEOUT_MS})'),
        click.option('--page-load-timeout', default=DEFAULT_PAGE_LOAD_TIMEOUT_MS, type=int,
                     envvar='DROVER_PAGE_LOAD_TIMEOUT_MS',
                     help=f'Visit timeout in ms (default: {DEFAULT_PAGE_LOAD_TIMEOUT_MS})'),
        click.option('--poll-interval', default=DEFAULT_POLL_INTERVAL_MS, type=int, envvar='DROVER_POLL_INTERVAL_MS',
                     help=f'Interval between DOM re-checks in ms (default: {DEFAULT_POLL_INTERVAL_MS})'),
        click.option('--report-dir', default='./drover_reports', envvar='DROVER_REPORT_DIR',
                     help='Report output directory'),
        click.option('--no-report', is_flag=True, help='Skip writing the HTML/JSON report'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="drover")
@click.option('-v', '--verbose', count=True, help='Show executor logs (-vv for debug output)')
def cli(verbose):
    """🐎 Drover - Command queue executor for browser tests

    Runs an ordered script of browser commands and checks the page
    reaches the expected state.
    """
    configure_logging(verbose)


@cli.command()
@click.argument('script_path', type=click.Path(exists=True, dir_okay=False))
@run_options
@click.pass_context
def run(ctx, script_path, headless, browser_name, base_url, timeout, page_load_timeout,
        poll_interval, report_dir, no_report):
    """
    Run a JSON command script.

    \b
    Examples:

        drover run adds_two_items.json --headless

        drover run checkout.json --base-url http://localhost:3000 --timeout 8000
    """
    try:
        script = load_script(script_path)
    except InvalidCommand as e:
        err_console.print(f"[red]❌ {escape(script_path)}: {escape(e.message)}[/red]")
        ctx.exit(2)

    result = _execute(ctx, script, headless, browser_name, base_url, timeout, page_load_timeout,
                      poll_interval, report_dir, no_report)
    ctx.exit(result.exit_code)


@cli.command()
@click.option('--url', default=TODOMVC_URL, show_default=True, help='TodoMVC implementation to test')
@run_options
@click.pass_context
def demo(ctx, url, headless, browser_name, base_url, timeout, page_load_timeout,
         poll_interval, report_dir, no_report):
    """
    Run the built-in TodoMVC check: type two items, expect two list entries.

    Example:

        drover demo --headless
    """
    result = _execute(ctx, todomvc_adds_two_items(url), headless, browser_name, base_url, timeout,
                      page_load_timeout, poll_interval, report_dir, no_report)
    ctx.exit(result.exit_code)


@cli.command()
@click.argument('script_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def show(ctx, script_path):
    """
    Validate a script and list its commands without opening a browser.
    """
    try:
        script = load_script(script_path)
    except InvalidCommand as e:
        err_console.print(f"[red]❌ {escape(script_path)}: {escape(e.message)}[/red]")
        ctx.exit(2)

    table = Table(title=script.name, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Kind", style="green")
    table.add_column("Target", style="yellow")
    table.add_column("Payload")
    table.add_column("Timeout", justify="right")

    for i, command in enumerate(script.commands, 1):
        table.add_row(
            str(i),
            command.kind.value,
            escape(command.target) if command.target is not None else "[dim]<subject>[/dim]",
            "" if command.payload is None else escape(repr(command.payload)),
            f"{command.timeout_ms}ms" if command.timeout_ms else "[dim]default[/dim]",
        )
    console.print(table)
    console.print(f"[green]✅ {len(script.commands)} commands OK[/green]")


@cli.command()
def doctor():
    """
    Check dependencies and browser availability.
    """
    console.print(Panel.fit(
        "[bold cyan]🩺 Drover Doctor[/bold cyan]\n"
        "[dim]System Health Check[/dim]",
        border_style="cyan"
    ))
    console.print()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Component", style="blue")
    table.add_column("Role", style="dim")
    table.add_column("Status", justify="center")

    all_good = True
    for package, role in [
        ("selenium", "Browser control"),
        ("click", "Command line"),
        ("rich", "Console output"),
    ]:
        try:
            status = f"[green]✅ {package_version(package)}[/green]"
        except PackageNotFoundError:
            status = "[red]❌ Missing[/red]"
            all_good = False
        table.add_row(package, role, status)

    browsers = {
        "chrome": ["google-chrome", "google-chrome-stable", "chromium", "chromium-browser", "chrome"],
        "firefox": ["firefox"],
    }
    found_browser = False
    for name, binaries in browsers.items():
        path = next((shutil.which(b) for b in binaries if shutil.which(b)), None)
        found_browser = found_browser or path is not None
        status = f"[green]✅ {path}[/green]" if path else "[yellow]⚠️ Not found[/yellow]"
        table.add_row(name, "Browser", status)

    for driver in ("chromedriver", "geckodriver"):
        path = shutil.which(driver)
        status = f"[green]✅ {path}[/green]" if path else "[dim]Selenium Manager will download[/dim]"
        table.add_row(driver, "WebDriver", status)

    console.print(table)
    console.print()

    if all_good and found_browser:
        console.print("[bold green]✅ Ready to run scripts.[/bold green]")
    elif all_good:
        console.print("[yellow]⚠️ No supported browser found on PATH.[/yellow]")
    else:
        console.print("[red]❌ Required packages are missing. Reinstall with: pip install drover[/red]")


def _execute(ctx, script: Script, headless, browser_name, base_url, timeout, page_load_timeout,
             poll_interval, report_dir, no_report) -> RunResult:
    """Run ``script`` in a fresh browser session and print the report."""
    try:
        config = ExecutorConfig(
            command_timeout_ms=timeout,
            page_load_timeout_ms=page_load_timeout,
            poll_interval_ms=poll_interval,
            base_url=base_url,
            headless=headless,
            browser=browser_name,
            report_dir=report_dir,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    console.print(Panel.fit(
        f"[bold blue]🐎 Drover[/bold blue]\n"
        f"[dim]{script.name} - {len(script.commands)} commands[/dim]",
        border_style="blue"
    ))

    recorder = None if no_report else RunRecorder(
        output_dir=config.report_dir,
        screenshot_on_failure=config.screenshot_on_failure,
    )

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Running {script.name}...", total=None)
            with browser_session(
                headless=config.headless,
                browser=config.browser,
                page_load_timeout_ms=config.page_load_timeout_ms,
            ) as browser:
                result = run_script(script, browser, config, recorder)
    except BrowserUnavailable as e:
        err_console.print(f"[red]❌ {escape(e.message)}[/red]")
        err_console.print("[dim]Run 'drover doctor' to check your setup[/dim]")
        ctx.exit(EXIT_BROWSER_UNAVAILABLE)

    print_report(result)
    return result


def print_report(result: RunResult) -> None:
    """Print the per-command table and the verdict."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Command", max_width=50)
    table.add_column("State")
    table.add_column("Elapsed", justify="right")
    table.add_column("Detail", max_width=50)

    for i, command_result in enumerate(result.results, 1):
        style = STATE_STYLES.get(command_result.state, "")
        detail = ""
        if command_result.outcome:
            detail = command_result.outcome.diff
        elif command_result.subject_count is not None:
            detail = f"{command_result.subject_count} element(s)"
        if command_result.error and not command_result.outcome:
            detail = command_result.error.kind
        if command_result.state == CommandState.PENDING:
            elapsed = "-"
            detail = "not run"
        else:
            elapsed = f"{command_result.elapsed_ms:.0f}ms"
        table.add_row(
            str(i),
            escape(command_result.command.describe()),
            f"[{style}]{command_result.state.value}[/{style}]" if style else command_result.state.value,
            elapsed,
            escape(detail),
        )

    console.print(table)

    assertions = result.assertions
    if assertions:
        passed = sum(1 for a in assertions if a.passed)
        console.print(f"[dim]Assertions: {passed} passed, {len(assertions) - passed} failed[/dim]")

    if result.success:
        console.print(f"\n[bold green]✅ {escape(result.name)}: passed ({len(result.results)} commands)[/bold green]")
    else:
        error = result.error
        console.print(f"\n[bold red]❌ {escape(result.name)}: failed[/bold red]")
        console.print(f"[red]{error.kind}: {escape(error.message)}[/red]")
        console.print(f"[dim]Command: {escape(error.command.describe())}[/dim]")
        if isinstance(error, AssertionTimeout):
            console.print(f"[dim]Selector: {escape(error.selector)}  Expected: {escape(repr(error.expected))}  Actual: {escape(repr(error.actual))}[/dim]")
        if error.elapsed_ms is not None:
            console.print(f"[dim]Waited: {error.elapsed_ms:.0f}ms[/dim]")

    console.print(f"\n[dim]Duration: {result.duration_seconds:.2f}s[/dim]")
    if result.report_path:
        console.print(f"[dim]Report: {result.report_path}[/dim]")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
