"""Per-calendar event fetching."""

import logging
from datetime import datetime, time, timedelta, tzinfo
from typing import Any, Dict, List, Optional, Set

from ..ics.exceptions import ICSPropertyError
from ..ics.models import Event, RecurrenceWindow
from ..ics.normalizer import normalize_event
from ..ics.parser import iter_events
from ..ics.properties import extract_datetime
from ..ics.rrule_expander import RRuleExpander, is_recurring
from ..timezone import TimezoneError, to_utc
from ..utils.logging import VERBOSE
from .exceptions import SourceConnectionError
from .models import Calendar, CalendarHandle
from .protocols import CalendarService

logger = logging.getLogger(__name__)

QUERY_TIME_FORMAT = "%Y%m%dT%H%M%SZ"


def build_time_range_query(window: RecurrenceWindow) -> str:
    """Build the EDS S-expression selecting objects that occur in ``window``."""
    start = to_utc(window.start).strftime(QUERY_TIME_FORMAT)
    until = to_utc(window.until).strftime(QUERY_TIME_FORMAT)
    return f'(occur-in-time-range? (make-time "{start}") (make-time "{until}"))'


def near_window(now: datetime) -> RecurrenceWindow:
    """The "near events" window around ``now``.

    Spans from the start of yesterday to the end of the day after tomorrow in
    ``now``'s zone.
    """
    if now.tzinfo is None:
        raise TimezoneError("Cannot build a window around a naive datetime")

    today = now.date()
    start = datetime.combine(today - timedelta(days=1), time.min, tzinfo=now.tzinfo)
    until = datetime.combine(today + timedelta(days=3), time.min, tzinfo=now.tzinfo)
    return RecurrenceWindow(start=start, until=until)


class CalendarFetcher:
    """Fetches, normalizes and expands the events of one calendar at a time."""

    def __init__(
        self,
        service: CalendarService,
        expander: Optional[RRuleExpander] = None,
        local_tz: Optional[tzinfo] = None,
    ):
        """Initialize the fetcher.

        Args:
            service: Calendar query collaborator
            expander: Recurrence expander, a default one if not given
            local_tz: Zone for floating times; taken from ``now`` when not given
        """
        self.service = service
        self.expander = expander or RRuleExpander()
        self.local_tz = local_tz

    async def fetch_events(
        self, calendar: Calendar, window: RecurrenceWindow, now: datetime
    ) -> List[Event]:
        """Fetch every event of ``calendar`` occurring in ``window``.

        Args:
            calendar: Calendar to query
            window: Time range to select and expand events in
            now: Current moment used to complete partial date/time values

        Returns:
            Single events plus expanded occurrences, in no particular order

        Raises:
            SourceConnectionError: If the calendar cannot be opened or queried
        """
        query = build_time_range_query(window)
        handle = await self._open(calendar)
        records = await self._query(calendar, handle, query)

        logger.log(VERBOSE, f"Calendar {calendar.label!r} returned {len(records)} record(s)")
        events = self.process_records(records, window, now, calendar=calendar.label)
        logger.info(f"Fetched {len(events)} event(s) from calendar {calendar.label!r}")
        return events

    async def fetch_near_events(self, calendar: Calendar, now: datetime) -> List[Event]:
        """Fetch the events of ``calendar`` in the near window around ``now``."""
        return await self.fetch_events(calendar, near_window(now), now)

    async def _open(self, calendar: Calendar) -> CalendarHandle:
        try:
            return await self.service.open_calendar(calendar.uid)
        except Exception as e:
            raise SourceConnectionError(
                f"Failed to open calendar {calendar.label!r}: {e}",
                source_name=calendar.label,
                operation="open_calendar",
            ) from e

    async def _query(self, calendar: Calendar, handle: CalendarHandle, query: str) -> List[str]:
        try:
            return list(await self.service.query(handle, query))
        except Exception as e:
            raise SourceConnectionError(
                f"Failed to query calendar {calendar.label!r}: {e}",
                source_name=calendar.label,
                operation="query",
            ) from e

    def process_records(
        self,
        records: List[str],
        window: RecurrenceWindow,
        now: datetime,
        calendar: Optional[str] = None,
    ) -> List[Event]:
        """Turn raw records into events.

        Unparseable records are skipped. Recurring masters are expanded inside
        ``window``; every other VEVENT becomes a single event. Occurrences that
        a detached instance (same UID, matching RECURRENCE-ID) overrides are
        left out in favour of that instance.
        """
        local_tz = self.local_tz or now.tzinfo
        components = iter_events(records)

        masters: List[Any] = []
        events: List[Event] = []
        overrides: Dict[str, Set[datetime]] = {}

        for component in components:
            if is_recurring(component):
                masters.append(component)
                continue

            event = normalize_event(component, now, local_tz, calendar=calendar)
            events.append(event)

            recurrence_id = self._recurrence_id(component, now, local_tz)
            if recurrence_id is not None and event.uid:
                overrides.setdefault(event.uid, set()).add(recurrence_id)

        for component in masters:
            template = normalize_event(component, now, local_tz, calendar=calendar)
            events.extend(
                self.expander.expand(
                    component,
                    template,
                    window,
                    local_tz=local_tz,
                    exclude=overrides.get(template.uid or ""),
                )
            )

        return events

    def _recurrence_id(
        self, component: Any, now: datetime, local_tz: Optional[tzinfo]
    ) -> Optional[datetime]:
        try:
            return extract_datetime(component, "RECURRENCE-ID", now, local_tz)
        except (ICSPropertyError, TimezoneError) as e:
            logger.warning(f"Ignoring unusable RECURRENCE-ID: {e}")
            return None
