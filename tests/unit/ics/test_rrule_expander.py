"""Unit tests for recurrence expansion."""

import logging
import time
from datetime import date, datetime, timedelta
from typing import Any, List

import pytest
from dateutil import tz as dateutil_tz
from icalendar import vText

from edsnext.ics.models import Event, RecurrenceWindow
from edsnext.ics.normalizer import normalize_event
from edsnext.ics.rrule_expander import (
    MAX_OCCURRENCES,
    RRuleExpander,
    RRuleParseError,
    is_recurring,
    parse_recurrence,
    serialize_recurrence,
)
from edsnext.sources.fetcher import near_window
from edsnext.timezone import UTC
from edsnext.utils.logging import VERBOSE

STANDUP_START = "DTSTART;TZID=Europe/Berlin:20261001T090000"
STANDUP_END = "DTEND;TZID=Europe/Berlin:20261001T093000"


@pytest.fixture
def window(now: datetime) -> RecurrenceWindow:
    """2026-10-18 00:00 to 2026-10-22 00:00 in Berlin."""
    return near_window(now)


@pytest.fixture
def expander() -> RRuleExpander:
    return RRuleExpander()


@pytest.fixture
def expand(make_component, vevent, now, berlin, window, expander):
    """Expand a master built from property lines inside the near window."""

    def _expand(*lines: str, **kwargs: Any) -> List[Event]:
        component = make_component(vevent("standup", "Standup", *lines))
        template = normalize_event(component, now, berlin)
        return expander.expand(
            component,
            template,
            kwargs.pop("window", window),
            local_tz=berlin,
            **kwargs,
        )

    return _expand


def starts_of(events: List[Event]) -> List[datetime]:
    return [event.starts for event in events]


class TestIsRecurring:
    """Test master detection."""

    def test_rrule_makes_master(self, make_component, vevent) -> None:
        assert is_recurring(make_component(vevent("a", "x", STANDUP_START, "RRULE:FREQ=DAILY")))

    def test_rdate_alone_is_not_master(self, make_component, vevent) -> None:
        component = make_component(
            vevent("a", "x", STANDUP_START, "RDATE;TZID=Europe/Berlin:20261020T090000")
        )
        assert not is_recurring(component)


class TestSerializeRecurrence:
    """Test rule text generation."""

    def test_dtstart_and_rule(self, make_component, vevent, now, berlin) -> None:
        component = make_component(vevent("a", "x", STANDUP_START, "RRULE:FREQ=DAILY"))
        starts = normalize_event(component, now, berlin).starts

        assert serialize_recurrence(component, starts) == (
            "DTSTART;TZID=Europe/Berlin:20261001T090000\nRRULE:FREQ=DAILY"
        )

    def test_utc_start(self, make_component, vevent, now, berlin) -> None:
        component = make_component(vevent("a", "x", "DTSTART:20261001T070000Z", "RRULE:FREQ=DAILY"))
        starts = normalize_event(component, now, berlin).starts

        assert serialize_recurrence(component, starts).splitlines()[0] == "DTSTART:20261001T070000Z"

    def test_date_until_anchored_to_start_time(self, make_component, vevent, now, berlin) -> None:
        component = make_component(
            vevent("a", "x", STANDUP_START, "RRULE:FREQ=DAILY;UNTIL=20261019")
        )
        starts = normalize_event(component, now, berlin).starts

        rule_line = serialize_recurrence(component, starts).splitlines()[1]

        assert rule_line == "RRULE:FREQ=DAILY;UNTIL=20261019T070000Z"

    def test_fixed_line_order(self, make_component, vevent, now, berlin) -> None:
        component = make_component(
            vevent(
                "a",
                "x",
                STANDUP_START,
                "EXDATE;TZID=Europe/Berlin:20261020T090000",
                "RDATE;TZID=Europe/Berlin:20261024T150000",
                "RRULE:FREQ=DAILY",
            )
        )
        starts = normalize_event(component, now, berlin).starts

        lines = serialize_recurrence(component, starts).splitlines()

        assert [line.split(":")[0].split(";")[0] for line in lines] == [
            "DTSTART",
            "RRULE",
            "RDATE",
            "EXDATE",
        ]
        assert lines[2] == "RDATE:20261024T130000Z"
        assert lines[3] == "EXDATE:20261020T070000Z"

    def test_parse_recurrence_rejects_empty_text(self) -> None:
        with pytest.raises(RRuleParseError):
            parse_recurrence("  ")

    def test_parse_recurrence_rejects_bad_rule(self) -> None:
        with pytest.raises(RRuleParseError):
            parse_recurrence("DTSTART:20261001T070000Z\nRRULE:FREQ=SOMETIMES")


class TestExpand:
    """Test occurrence generation inside the window."""

    def test_daily_inside_window(self, expand, berlin) -> None:
        events = expand(STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY")

        assert starts_of(events) == [
            datetime(2026, 10, day, 9, 0, tzinfo=berlin) for day in (18, 19, 20, 21)
        ]
        assert all(event.duration == timedelta(minutes=30) for event in events)
        assert all(event.uid == "standup" and event.title == "Standup" for event in events)

    def test_count_limits_occurrences(self, expand, berlin) -> None:
        events = expand(
            "DTSTART;TZID=Europe/Berlin:20261018T090000",
            "DTEND;TZID=Europe/Berlin:20261018T093000",
            "RRULE:FREQ=DAILY;COUNT=3",
        )

        assert starts_of(events) == [
            datetime(2026, 10, day, 9, 0, tzinfo=berlin) for day in (18, 19, 20)
        ]

    def test_utc_until(self, expand, berlin) -> None:
        events = expand(STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY;UNTIL=20261019T235959Z")

        assert starts_of(events) == [
            datetime(2026, 10, 18, 9, 0, tzinfo=berlin),
            datetime(2026, 10, 19, 9, 0, tzinfo=berlin),
        ]

    def test_date_until_is_inclusive(self, expand) -> None:
        events = expand(STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY;UNTIL=20261019")
        assert [event.starts.day for event in events] == [18, 19]

    def test_exdate_removes_occurrence(self, expand) -> None:
        events = expand(
            STANDUP_START,
            STANDUP_END,
            "RRULE:FREQ=DAILY",
            "EXDATE;TZID=Europe/Berlin:20261020T090000",
        )

        assert [event.starts.day for event in events] == [18, 19, 21]

    def test_rdate_adds_occurrence(self, expand, berlin) -> None:
        events = expand(
            "DTSTART;TZID=Europe/Berlin:20261012T090000",
            "DTEND;TZID=Europe/Berlin:20261012T100000",
            "RRULE:FREQ=WEEKLY",
            "RDATE;TZID=Europe/Berlin:20261020T150000",
        )

        assert starts_of(events) == [
            datetime(2026, 10, 19, 9, 0, tzinfo=berlin),
            datetime(2026, 10, 20, 15, 0, tzinfo=berlin),
        ]
        assert events[1].ends == datetime(2026, 10, 20, 16, 0, tzinfo=berlin)

    def test_window_bounds_are_exclusive(self, expand, berlin) -> None:
        # an occurrence exactly at the window start is not produced
        events = expand(
            "DTSTART;TZID=Europe/Berlin:20261001T000000",
            "DTEND;TZID=Europe/Berlin:20261001T003000",
            "RRULE:FREQ=DAILY",
        )

        assert starts_of(events) == [
            datetime(2026, 10, day, 0, 0, tzinfo=berlin) for day in (19, 20, 21)
        ]

    def test_exclude_overridden_instants(self, expand, berlin) -> None:
        events = expand(
            STANDUP_START,
            STANDUP_END,
            "RRULE:FREQ=DAILY",
            exclude=[datetime(2026, 10, 19, 7, 0, tzinfo=UTC)],
        )

        assert [event.starts.day for event in events] == [18, 20, 21]

    def test_wall_clock_kept_across_dst(self, expand, berlin) -> None:
        window = RecurrenceWindow(
            start=datetime(2026, 10, 18, 0, 0, tzinfo=berlin),
            until=datetime(2026, 11, 1, 0, 0, tzinfo=berlin),
        )

        events = expand(
            "DTSTART;TZID=Europe/Berlin:20261005T090000",
            "DTEND;TZID=Europe/Berlin:20261005T100000",
            "RRULE:FREQ=WEEKLY",
            window=window,
        )

        assert [(event.starts.day, event.starts.hour) for event in events] == [(19, 9), (26, 9)]
        assert [event.starts.utcoffset() for event in events] == [
            timedelta(hours=2),
            timedelta(hours=1),
        ]
        assert all(event.duration == timedelta(hours=1) for event in events)

    def test_window_in_other_zone(self, make_component, vevent, now, berlin, expander) -> None:
        component = make_component(
            vevent("standup", "Standup", STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY")
        )
        template = normalize_event(component, now, berlin)
        window = RecurrenceWindow(
            start=datetime(2026, 10, 19, 0, 0, tzinfo=UTC),
            until=datetime(2026, 10, 20, 0, 0, tzinfo=UTC),
        )

        events = expander.expand(component, template, window)

        assert starts_of(events) == [datetime(2026, 10, 19, 9, 0, tzinfo=berlin)]


class TestExpansionLimits:
    """Test the occurrence cap and failure handling."""

    def test_default_cap(self, expand, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="edsnext.ics.rrule_expander"):
            events = expand(
                "DTSTART;TZID=Europe/Berlin:20261017T235000",
                "DTEND;TZID=Europe/Berlin:20261017T235500",
                "RRULE:FREQ=MINUTELY",
            )

        assert len(events) == MAX_OCCURRENCES
        assert events[0].starts.minute == 1
        assert "Limiting expansion" in caplog.text

    def test_configured_cap(self, make_component, vevent, now, berlin, window) -> None:
        component = make_component(vevent("a", "x", STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY"))
        template = normalize_event(component, now, berlin)

        events = RRuleExpander(max_occurrences=2).expand(component, template, window, berlin)

        assert len(events) == 2

    @pytest.mark.parametrize(("requested", "effective"), [(0, 1), (5, 5), (100, MAX_OCCURRENCES)])
    def test_cap_clamped(self, requested: int, effective: int) -> None:
        assert RRuleExpander(max_occurrences=requested).max_occurrences == effective

    def test_from_settings(self) -> None:
        class Settings:
            rrule_max_occurrences = 7

        assert RRuleExpander.from_settings(Settings()).max_occurrences == 7

    def test_unparseable_rule_yields_nothing(
        self, make_component, vevent, now, berlin, window, expander, caplog
    ) -> None:
        component = make_component(vevent("a", "x", STANDUP_START, STANDUP_END))
        component["RRULE"] = vText("FREQ=SOMETIMES")
        template = normalize_event(component, now, berlin)

        with caplog.at_level(logging.WARNING, logger="edsnext.ics.rrule_expander"):
            events = expander.expand(component, template, window, berlin)

        assert events == []
        assert "Skipping recurring event" in caplog.text

    def test_master_without_start_yields_nothing(
        self, make_component, vevent, now, berlin, window, expander
    ) -> None:
        component = make_component(vevent("a", "x", "RRULE:FREQ=DAILY"))
        template = normalize_event(component, now, berlin)

        assert expander.expand(component, template, window, berlin) == []

    def test_malformed_exdate_yields_nothing(
        self, make_component, vevent, now, berlin, window, expander
    ) -> None:
        component = make_component(vevent("a", "x", STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY"))
        component["EXDATE"] = vText("20261020T090000")
        template = normalize_event(component, now, berlin)

        assert expander.expand(component, template, window, berlin) == []

    def test_master_without_end_has_no_instance_ends(self, expand) -> None:
        events = expand(STANDUP_START, "RRULE:FREQ=DAILY")

        assert len(events) == 4
        assert all(event.ends is None for event in events)


@pytest.fixture
def system_zone(monkeypatch):
    """The process-local zone, set to Berlin, as the CLI sees it."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    yield dateutil_tz.tzlocal()
    monkeypatch.undo()
    time.tzset()


class TestSystemZone:
    """Test expansion of floating and all-day masters in the unnamed system zone."""

    def expand_local(self, make_component, vevent, now, expander, *lines: str) -> List[Event]:
        component = make_component(vevent("local", "Local", *lines))
        template = normalize_event(component, now, now.tzinfo)
        return expander.expand(component, template, near_window(now), local_tz=now.tzinfo)

    def test_no_dtstart_line_for_unnamed_zone(self, make_component, vevent, system_zone) -> None:
        now = datetime(2026, 10, 19, 9, 15, tzinfo=system_zone)
        component = make_component(
            vevent("a", "x", "DTSTART;VALUE=DATE:20261012", "RRULE:FREQ=WEEKLY;BYDAY=MO")
        )
        starts = normalize_event(component, now, system_zone).starts

        assert serialize_recurrence(component, starts) == "RRULE:FREQ=WEEKLY;BYDAY=MO"

    def test_weekly_all_day_keeps_its_weekday(
        self, make_component, vevent, expander, system_zone
    ) -> None:
        now = datetime(2026, 10, 19, 9, 15, tzinfo=system_zone)

        events = self.expand_local(
            make_component,
            vevent,
            now,
            expander,
            "DTSTART;VALUE=DATE:20261012",
            "DTEND;VALUE=DATE:20261013",
            "RRULE:FREQ=WEEKLY;BYDAY=MO",
        )

        assert [event.starts.date() for event in events] == [date(2026, 10, 19)]
        assert events[0].starts.hour == 0
        assert events[0].duration == timedelta(days=1)

    def test_daily_floating_keeps_wall_time_across_dst(
        self, make_component, vevent, expander, system_zone
    ) -> None:
        now = datetime(2026, 10, 24, 12, 0, tzinfo=system_zone)

        events = self.expand_local(
            make_component,
            vevent,
            now,
            expander,
            "DTSTART:20261001T090000",
            "DTEND:20261001T091500",
            "RRULE:FREQ=DAILY",
        )

        assert [(event.starts.day, event.starts.hour) for event in events] == [
            (23, 9),
            (24, 9),
            (25, 9),
            (26, 9),
        ]
        # summer time ends on the 25th
        assert [event.starts.utcoffset() for event in events] == [
            timedelta(hours=2),
            timedelta(hours=2),
            timedelta(hours=1),
            timedelta(hours=1),
        ]
        assert all(event.duration == timedelta(minutes=15) for event in events)


class TestExpansionLogging:
    """Test the per-event detail log."""

    def test_expansion_logged_at_verbose(self, expand, caplog) -> None:
        with caplog.at_level(VERBOSE, logger="edsnext.ics.rrule_expander"):
            expand(STANDUP_START, STANDUP_END, "RRULE:FREQ=DAILY")

        record = next(r for r in caplog.records if "Expanded event" in r.getMessage())
        assert record.levelname == "VERBOSE"
        assert "4 occurrence(s)" in record.getMessage()
