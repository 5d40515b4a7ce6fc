"""Unit tests for the timezone service."""

from datetime import datetime, timedelta
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from edsnext.timezone import (
    UTC,
    TimezoneError,
    TimezoneResolutionError,
    absolute_delta,
    get_local_timezone,
    normalize_timezone,
    now_local,
    resolve_timezone,
    shift,
    to_utc,
)


class TestNormalizeTimezone:
    """Test vendor prefix stripping."""

    def test_plain_identifier_unchanged(self) -> None:
        assert normalize_timezone("Europe/Berlin") == "Europe/Berlin"

    def test_vendor_prefix_stripped(self) -> None:
        assert normalize_timezone("/freeassociation.sourceforge.net/Asia/Kolkata") == "Asia/Kolkata"

    def test_tzfile_prefix_stripped(self) -> None:
        tzid = "/freeassociation.sourceforge.net/Tzfile/Europe/London"
        assert normalize_timezone(tzid) == "Europe/London"

    def test_surrounding_whitespace_stripped(self) -> None:
        assert normalize_timezone("  UTC ") == "UTC"


class TestResolveTimezone:
    """Test zone table lookup."""

    def test_resolves_known_zone(self) -> None:
        assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_resolves_vendor_prefixed_zone(self) -> None:
        zone = resolve_timezone("/freeassociation.sourceforge.net/Asia/Kolkata")
        assert zone.key == "Asia/Kolkata"

    def test_unknown_zone_raises(self) -> None:
        with pytest.raises(TimezoneResolutionError) as exc_info:
            resolve_timezone("Mars/Olympus_Mons")

        assert exc_info.value.tzid == "Mars/Olympus_Mons"
        assert isinstance(exc_info.value, TimezoneError)

    def test_empty_zone_raises(self) -> None:
        with pytest.raises(TimezoneResolutionError):
            resolve_timezone("   ")


class TestLocalTimezone:
    """Test system zone access."""

    def test_returns_system_zone(self) -> None:
        with patch("edsnext.timezone.service.dateutil_tz.tzlocal", return_value=UTC):
            assert get_local_timezone() is UTC

    def test_failure_wrapped_in_timezone_error(self) -> None:
        with patch(
            "edsnext.timezone.service.dateutil_tz.tzlocal",
            side_effect=LookupError("no zone"),
        ):
            with pytest.raises(TimezoneError, match="no zone"):
                get_local_timezone()

    def test_now_local_is_aware(self, berlin: ZoneInfo) -> None:
        current = now_local(berlin)
        assert current.tzinfo is berlin


class TestAbsoluteArithmetic:
    """Test elapsed-time arithmetic across DST transitions."""

    def test_to_utc_rejects_naive(self) -> None:
        with pytest.raises(TimezoneError):
            to_utc(datetime(2026, 10, 19, 9, 0))

    def test_to_utc_converts(self, berlin: ZoneInfo) -> None:
        assert to_utc(datetime(2026, 10, 19, 9, 0, tzinfo=berlin)) == datetime(
            2026, 10, 19, 7, 0, tzinfo=UTC
        )

    def test_absolute_delta_across_fall_back(self, berlin: ZoneInfo) -> None:
        # clocks go back from 03:00 to 02:00 on 2026-10-25
        earlier = datetime(2026, 10, 25, 0, 0, tzinfo=berlin)
        later = datetime(2026, 10, 25, 6, 0, tzinfo=berlin)
        assert absolute_delta(later, earlier) == timedelta(hours=7)

    def test_shift_across_fall_back(self, berlin: ZoneInfo) -> None:
        start = datetime(2026, 10, 25, 1, 30, tzinfo=berlin)
        end = shift(start, timedelta(hours=2))

        assert end.tzinfo is berlin
        assert end.hour == 2
        assert end.fold == 1
        assert absolute_delta(end, start) == timedelta(hours=2)

    def test_shift_keeps_wall_clock_without_transition(self, berlin: ZoneInfo) -> None:
        start = datetime(2026, 10, 19, 9, 0, tzinfo=berlin)
        assert shift(start, timedelta(minutes=30)) == datetime(2026, 10, 19, 9, 30, tzinfo=berlin)
