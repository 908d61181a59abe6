"""Reporters - Run records and HTML reports."""

from drover.reporters.run_recorder import RunRecorder

__all__ = ["RunRecorder"]
