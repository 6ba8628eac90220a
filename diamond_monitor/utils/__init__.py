"""Utilities for the Diamond Monitor."""

from .loader import load_object
from .progress import ConsoleEventListener
from .report_writer import JSONReportWriter

__all__ = [
    "ConsoleEventListener",
    "JSONReportWriter",
    "load_object",
]
