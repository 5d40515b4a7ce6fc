"""Calendar source management module."""

from .directory import list_calendars, parse_source_data
from .exceptions import (
    SourceConnectionError,
    SourceDirectoryError,
    SourceError,
    SourceTimeoutError,
)
from .fetcher import CalendarFetcher, build_time_range_query, near_window
from .manager import SourceManager
from .models import Calendar, CalendarFetchResult, CalendarHandle, Source

__all__ = [
    "Calendar",
    "CalendarFetchResult",
    "CalendarFetcher",
    "CalendarHandle",
    "Source",
    "SourceConnectionError",
    "SourceDirectoryError",
    "SourceError",
    "SourceManager",
    "SourceTimeoutError",
    "build_time_range_query",
    "list_calendars",
    "near_window",
    "parse_source_data",
]
