"""Core timezone service for edsnext.

Resolves iCalendar TZID values to zoneinfo zones, provides the system/local
zone and the absolute-time arithmetic used by the normalizer and the
recurrence expander.
"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import tz as dateutil_tz

logger = logging.getLogger(__name__)

UTC = dt_timezone.utc

# libical prefixes its builtin zones with this vendor path segment
TZFILE_PREFIX = "Tzfile/"


class TimezoneError(Exception):
    """Raised when timezone operations fail."""


class TimezoneResolutionError(TimezoneError):
    """Raised when a zone identifier cannot be found in the zone table."""

    def __init__(self, tzid: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Could not resolve timezone '{tzid}'")
        self.tzid = tzid


def normalize_timezone(tzid: str) -> str:
    """Normalize a vendor-prefixed zone identifier.

    EDS can report zones such as ``/freeassociation.sourceforge.net/Asia/Kolkata``.
    The first path fragment is the vendor prefix; everything after it is the
    actual zone name.

    Args:
        tzid: Raw TZID parameter value

    Returns:
        Zone identifier suitable for a zone table lookup
    """
    tzid = tzid.strip()
    if tzid.startswith("/"):
        tzid = tzid.split("/", 2)[-1]
        if tzid.startswith(TZFILE_PREFIX):
            tzid = tzid[len(TZFILE_PREFIX) :]
    return tzid


def resolve_timezone(tzid: str) -> ZoneInfo:
    """Resolve a TZID to a zone table entry.

    Args:
        tzid: Raw or normalized zone identifier

    Returns:
        The matching ZoneInfo

    Raises:
        TimezoneResolutionError: If the identifier is empty or unknown
    """
    name = normalize_timezone(tzid)
    if not name:
        raise TimezoneResolutionError(tzid, "Empty timezone identifier")

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimezoneResolutionError(tzid) from e


def get_local_timezone() -> tzinfo:
    """Get the system/local zone at call time.

    Raises:
        TimezoneError: If the system zone cannot be determined
    """
    try:
        return dateutil_tz.tzlocal()
    except Exception as e:
        raise TimezoneError(f"Failed to determine system timezone: {e}") from e


def now_local(tz: Optional[tzinfo] = None) -> datetime:
    """Get the current time in the given zone, or the system zone."""
    return datetime.now(tz or get_local_timezone())


def to_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to UTC."""
    if dt.tzinfo is None:
        raise TimezoneError(f"Cannot convert naive datetime {dt.isoformat()} to UTC")
    return dt.astimezone(UTC)


def absolute_delta(later: datetime, earlier: datetime) -> timedelta:
    """Elapsed time between two aware datetimes.

    Plain subtraction of datetimes that share a tzinfo compares wall clocks and
    ignores DST transitions, so both sides go through UTC first.
    """
    return to_utc(later) - to_utc(earlier)


def shift(dt: datetime, delta: timedelta) -> datetime:
    """Move an aware datetime by an absolute duration, keeping its zone."""
    return (to_utc(dt) + delta).astimezone(dt.tzinfo)
