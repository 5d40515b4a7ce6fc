"""iCalendar event normalization and recurrence expansion module."""

from .exceptions import ICSError, ICSParseError, ICSPropertyError
from .models import Event, EventStatus, PartialDateTime, RecurrenceWindow
from .normalizer import normalize_event
from .parser import iter_events, parse_calendar_object
from .rrule_expander import (
    RRuleExpander,
    RRuleExpansionError,
    RRuleParseError,
    is_recurring,
    serialize_recurrence,
)

__all__ = [
    "Event",
    "EventStatus",
    "ICSError",
    "ICSParseError",
    "ICSPropertyError",
    "PartialDateTime",
    "RRuleExpander",
    "RRuleExpansionError",
    "RRuleParseError",
    "RecurrenceWindow",
    "is_recurring",
    "iter_events",
    "normalize_event",
    "parse_calendar_object",
    "serialize_recurrence",
]
