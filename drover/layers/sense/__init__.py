"""Sense Layer - Resolving selectors against the live DOM."""

from drover.layers.sense.subject import Subject, resolve

__all__ = ["Subject", "resolve"]
