"""Timeline assembly and classification module."""

from .assembler import (
    TimelineAssembler,
    day_events,
    filter_by_status,
    floor_to_minute,
    listing,
    sort_events,
)
from .models import (
    CalendarFailure,
    Classification,
    ClassificationKind,
    DayEntry,
    IncompleteTimelineError,
    StatusPolicy,
)

__all__ = [
    "CalendarFailure",
    "Classification",
    "ClassificationKind",
    "DayEntry",
    "IncompleteTimelineError",
    "StatusPolicy",
    "TimelineAssembler",
    "day_events",
    "filter_by_status",
    "floor_to_minute",
    "listing",
    "sort_events",
]
