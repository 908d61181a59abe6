"""Action Layer - Command execution."""

from drover.layers.action.executor import CommandExecutor

__all__ = ["CommandExecutor"]
