"""Raw calendar object parsing on top of ``icalendar``."""

import logging
from typing import Any

from icalendar import Component

from .exceptions import ICSParseError

logger = logging.getLogger(__name__)


def parse_calendar_object(raw: str) -> list[Any]:
    """Parse one raw calendar record and return its VEVENT components.

    EDS hands out records either as bare ``VEVENT`` blocks or wrapped in a
    ``VCALENDAR``; both are accepted. Non-event components are dropped.

    Args:
        raw: iCalendar text of a single record

    Returns:
        VEVENT components found in the record (possibly empty)

    Raises:
        ICSParseError: If the text cannot be parsed at all
    """
    if not raw or not raw.strip():
        raise ICSParseError("Empty calendar object")

    try:
        components = Component.from_ical(raw, multiple=True)
    except Exception as e:
        raise ICSParseError(f"Failed to parse calendar object: {e}") from e

    events = []
    for component in components:
        events.extend(component.walk("VEVENT"))

    logger.debug(f"Parsed calendar object into {len(events)} VEVENT component(s)")
    return events


def iter_events(records: list[str]) -> list[Any]:
    """Parse a batch of raw records, skipping the ones that fail.

    Args:
        records: Raw iCalendar texts as returned by a calendar query

    Returns:
        All VEVENT components of the parseable records, in record order
    """
    events = []
    for index, raw in enumerate(records):
        try:
            events.extend(parse_calendar_object(raw))
        except ICSParseError as e:
            logger.warning(f"Skipping unparseable calendar object #{index}: {e.message}")
    return events
