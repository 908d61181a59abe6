"""Layers - Sensing the page and acting on it."""
