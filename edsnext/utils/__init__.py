"""Utility functions and helpers package."""

from .helpers import format_duration, format_time
from .logging import setup_logging

__all__ = [
    "format_duration",
    "format_time",
    "setup_logging",
]
