"""
End-to-End Demo: Drover on TodoMVC

Runs the "adds 2 items" script against the React TodoMVC app in a real
Chrome window and prints the per-command timeline.
"""

from drover import ExecutorConfig, run_script
from drover.core.driver_factory import browser_session
from drover.reporters import RunRecorder
from drover.scenarios import TODOMVC_URL, todomvc_adds_two_items


def main():
    print("=" * 60)
    print("🐎 DROVER - End-to-End Demo")
    print("=" * 60)
    print()
    print(f"Target: {TODOMVC_URL}")
    print("Script: type two todos, expect two list entries")
    print("-" * 60)

    script = todomvc_adds_two_items()
    config = ExecutorConfig(command_timeout_ms=4000, poll_interval_ms=50)
    recorder = RunRecorder(output_dir=config.report_dir)

    with browser_session(headless=False) as browser:
        result = run_script(script, browser, config, recorder)

    print()
    if result.success:
        print("✅ SUCCESS! All commands executed")
    else:
        print(f"❌ Failed: {result.error}")

    print()
    print("📝 Command Timeline:")
    for i, command_result in enumerate(result.results, 1):
        print(f"   {i}. {command_result.state.value:<8} {command_result.command.describe()}"
              f" ({command_result.elapsed_ms:.0f}ms)")
        if command_result.outcome:
            print(f"      {command_result.outcome.diff}")

    print()
    print(f"⏱️  Duration: {result.duration_seconds:.2f}s")
    print(f"📄 Full report: {result.report_path}")
    print("=" * 60)


if __name__ == "__main__":
    main()
