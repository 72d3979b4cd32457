"""Hearth focus timer core."""

__version__ = "1.0.0"
