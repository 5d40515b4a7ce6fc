"""Timeline assembly and now/next classification."""

import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable, List, Optional

from ..ics.models import Event
from ..sources.models import CalendarFetchResult
from ..timezone import absolute_delta
from .models import (
    ACTIVE_STATUSES,
    CalendarFailure,
    Classification,
    DayEntry,
    IncompleteTimelineError,
    StatusPolicy,
)

logger = logging.getLogger(__name__)


def floor_to_minute(delta: timedelta) -> timedelta:
    """Truncate a non-negative duration to whole minutes."""
    minutes = max(int(delta.total_seconds()), 0) // 60
    return timedelta(minutes=minutes)


def filter_by_status(
    events: Iterable[Event], policy: StatusPolicy = StatusPolicy.PERMISSIVE
) -> List[Event]:
    """Drop events the status policy excludes.

    Permissive drops cancelled events only. Restrictive keeps events whose
    status is active (tentative, confirmed, completed, final, in-process) or
    absent.
    """
    if StatusPolicy(policy) == StatusPolicy.RESTRICTIVE:
        return [
            event for event in events if event.status is None or event.status in ACTIVE_STATUSES
        ]
    return [event for event in events if not event.is_cancelled]


def _start_key(event: Event) -> tuple[bool, float]:
    if event.starts is None:
        return True, 0.0
    return False, event.starts.timestamp()


def sort_events(events: Iterable[Event]) -> List[Event]:
    """Stable sort by start instant; events without a start go last."""
    return sorted(events, key=_start_key)


def is_active_candidate(event: Event, now: datetime) -> bool:
    """Whether an event can be current or next: complete and not yet over."""
    return event.is_complete and event.ends > now  # type: ignore[operator]


def listing(events: Iterable[Event]) -> List[Event]:
    """All events in timeline order, incomplete ones included."""
    return sort_events(events)


def day_events(
    events: Iterable[Event], day: date, tz: Optional[tzinfo] = None
) -> List[DayEntry]:
    """Events starting on ``day`` in zone ``tz``, ordered by start.

    Args:
        events: Events to pick from
        day: Local calendar day
        tz: Zone that defines ``day``; each event's own zone if not given

    Returns:
        One entry per event; events without a start are never listed
    """
    entries = []
    for event in sort_events(events):
        if event.starts is None:
            continue
        local_start = event.starts.astimezone(tz) if tz is not None else event.starts
        if local_start.date() != day:
            continue
        local_end = event.ends
        if local_end is not None and tz is not None:
            local_end = local_end.astimezone(tz)
        entries.append(
            DayEntry(
                title=event.display_title,
                starts=local_start,
                ends=local_end,
                calendar=event.calendar,
            )
        )
    return entries


class TimelineAssembler:
    """Merges per-calendar results and classifies the timeline."""

    def __init__(
        self,
        status_policy: StatusPolicy = StatusPolicy.PERMISSIVE,
        limit_to_today: bool = False,
    ):
        """Initialize the assembler.

        Args:
            status_policy: Which statuses take part in the timeline
            limit_to_today: Report "no event today" instead of a next event on another day
        """
        self.status_policy = StatusPolicy(status_policy)
        self.limit_to_today = limit_to_today

    @classmethod
    def from_settings(cls, settings: Any) -> "TimelineAssembler":
        return cls(
            status_policy=getattr(settings, "status_policy", StatusPolicy.PERMISSIVE),
            limit_to_today=getattr(settings, "limit_to_today", False),
        )

    def assemble(
        self,
        results: Iterable[CalendarFetchResult],
        whitelist: Optional[Iterable[str]] = None,
    ) -> List[Event]:
        """Merge fetch results into one filtered, sorted timeline.

        Args:
            results: Per-calendar fetch results
            whitelist: Calendar display names to keep; all when empty

        Returns:
            Events of the selected calendars that pass the status policy, sorted

        Raises:
            IncompleteTimelineError: If any selected calendar failed
        """
        names = set(whitelist or ())
        selected = [
            result
            for result in results
            if not names or result.calendar.display_name in names
        ]

        failures = [
            CalendarFailure.from_error(result.calendar.label, result.error)
            for result in selected
            if result.error is not None
        ]
        if failures:
            raise IncompleteTimelineError(failures)

        merged = [event for result in selected for event in result.events]
        kept = filter_by_status(merged, self.status_policy)
        logger.debug(
            f"Assembled {len(kept)} event(s) from {len(selected)} calendar(s), "
            f"{len(merged) - len(kept)} dropped by {self.status_policy.value} status policy"
        )
        return sort_events(kept)

    def classify(self, events: Iterable[Event], now: datetime) -> Classification:
        """Classify the timeline relative to ``now``.

        The first event (in start order) with ``starts <= now < ends`` is
        current; otherwise the earliest event still to start is next. Only
        events with both bounds, ``ends >= starts`` and ``ends > now`` are
        considered.
        """
        candidates = [event for event in sort_events(events) if is_active_candidate(event, now)]
        if not candidates:
            return Classification.none()

        for event in candidates:
            if event.starts <= now:  # type: ignore[operator]
                remaining = floor_to_minute(absolute_delta(event.ends, now))  # type: ignore[arg-type]
                logger.debug(f"Current event {event.uid!r} ends in {remaining}")
                return Classification.current(event, remaining)

        upcoming = candidates[0]
        if self.limit_to_today and not self._is_today(upcoming.starts, now):  # type: ignore[arg-type]
            return Classification.none_today()

        remaining = floor_to_minute(absolute_delta(upcoming.starts, now))  # type: ignore[arg-type]
        logger.debug(f"Next event {upcoming.uid!r} starts in {remaining}")
        return Classification.next(upcoming, remaining)

    def whats_next(
        self,
        results: Iterable[CalendarFetchResult],
        now: datetime,
        whitelist: Optional[Iterable[str]] = None,
    ) -> Classification:
        """Assemble and classify in one step."""
        return self.classify(self.assemble(results, whitelist), now)

    @staticmethod
    def _is_today(instant: datetime, now: datetime) -> bool:
        return instant.astimezone(now.tzinfo).date() == now.date()
