"""Per-property extraction from parsed VEVENT components.

Each extractor reads one property independently and returns the first value
present, or ``None`` when the property is absent. Date/time extraction turns
the raw value into a :class:`PartialDateTime` plus its TZID, completes missing
fields from ``now`` and attaches the resolved zone.
"""

import logging
import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, NamedTuple, Optional

from ..timezone import UTC, get_local_timezone, resolve_timezone
from .exceptions import ICSPropertyError
from .models import EventStatus, PartialDateTime

logger = logging.getLogger(__name__)

# [YYYYMMDD][THHMM[SS]][Z]; any part may be missing in vendor data
_PARTIAL_DATETIME_RE = re.compile(
    r"^(?:(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2}))?"
    r"(?:T(?P<hour>\d{2})(?P<minute>\d{2})(?P<second>\d{2})?)?"
    r"(?P<utc>Z)?$"
)


class RawDateTime(NamedTuple):
    """A date/time property before completion and zone resolution."""

    value: PartialDateTime
    tzid: Optional[str]
    is_utc: bool = False


def first_value(component: Any, name: str) -> Any:
    """Get the first occurrence of a property, or ``None``."""
    value = component.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_text(component: Any, name: str) -> Optional[str]:
    """Extract a text property verbatim."""
    value = first_value(component, name)
    if value is None:
        return None
    return str(value)


def extract_uid(component: Any) -> Optional[str]:
    return extract_text(component, "UID")


def extract_status(component: Any) -> Optional[EventStatus]:
    """Extract STATUS; unrecognized values are treated as absent."""
    raw = extract_text(component, "STATUS")
    status = EventStatus.from_ical(raw)
    if raw is not None and status is None:
        logger.debug(f"Ignoring unrecognized STATUS value {raw!r}")
    return status


def parse_partial_datetime(text: str) -> tuple[PartialDateTime, bool]:
    """Parse raw iCalendar date/time text in which fields may be missing.

    Returns:
        The partial value and whether it carried the UTC designator

    Raises:
        ICSPropertyError: If the text matches no known layout
    """
    match = _PARTIAL_DATETIME_RE.match(text.strip())
    if not match or not text.strip():
        raise ICSPropertyError(f"Malformed date/time value {text!r}")

    fields = {
        key: int(value)
        for key, value in match.groupdict().items()
        if key != "utc" and value is not None
    }
    return PartialDateTime(**fields), match.group("utc") is not None


def extract_partial_datetime(component: Any, name: str) -> Optional[RawDateTime]:
    """Read a date/time property as a partial value plus its TZID.

    Args:
        component: Parsed VEVENT component
        name: Property name, e.g. ``DTSTART``

    Returns:
        The raw value, or ``None`` if the property is absent

    Raises:
        ICSPropertyError: If the value cannot be read as a date/time
    """
    prop = first_value(component, name)
    if prop is None:
        # icalendar drops values it could not decode and records them here
        for error_name, error in getattr(component, "errors", None) or []:
            if str(error_name).upper() == name.upper():
                raise ICSPropertyError(f"Malformed {name}: {error}", name)
        return None

    params = getattr(prop, "params", None) or {}
    tzid = params.get("TZID") or None
    value = getattr(prop, "dt", prop)

    if isinstance(value, datetime):
        # an explicit TZID always wins over whatever icalendar attached
        is_utc = tzid is None and value.tzinfo is not None
        if is_utc and value.utcoffset() != timedelta(0):
            # icalendar only produces aware values without a TZID for UTC
            value = value.astimezone(UTC)
        return RawDateTime(PartialDateTime.from_value(value), tzid, is_utc)

    if isinstance(value, date):
        return RawDateTime(PartialDateTime.from_value(value), tzid)

    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")

    if isinstance(value, str):
        try:
            partial, is_utc = parse_partial_datetime(value)
        except ICSPropertyError as e:
            raise ICSPropertyError(e.message, name) from e
        return RawDateTime(partial, tzid, is_utc and tzid is None)

    raise ICSPropertyError(f"Unsupported {name} value type {type(value).__name__}", name)


def extract_datetime(
    component: Any,
    name: str,
    now: datetime,
    local_tz: Optional[tzinfo] = None,
) -> Optional[datetime]:
    """Extract a date/time property as a zoned instant.

    Missing year, month and day come from ``now``'s local date; missing time
    fields default to zero. An explicit TZID is resolved through the zone
    table; without one the value is local (or UTC when it carries ``Z``).

    Args:
        component: Parsed VEVENT component
        name: Property name
        now: Current moment; its local date completes date-less values
        local_tz: Zone for floating values, the system zone if not given

    Returns:
        Zoned datetime, or ``None`` if the property is absent

    Raises:
        ICSPropertyError: If the property data is malformed
        TimezoneResolutionError: If the TZID is not a known zone
    """
    raw = extract_partial_datetime(component, name)
    if raw is None:
        return None

    if raw.tzid:
        zone = resolve_timezone(raw.tzid)
    elif raw.is_utc:
        zone = UTC
    else:
        zone = local_tz or get_local_timezone()

    today = now.astimezone(local_tz or get_local_timezone()).date()
    try:
        naive = raw.value.complete(today)
    except ICSPropertyError as e:
        raise ICSPropertyError(e.message, name) from e
    return naive.replace(tzinfo=zone)


def extract_duration(component: Any) -> Optional[timedelta]:
    """Extract DURATION as a timedelta.

    Raises:
        ICSPropertyError: If the value is not a duration
    """
    prop = first_value(component, "DURATION")
    if prop is None:
        return None

    value = getattr(prop, "dt", prop)
    if not isinstance(value, timedelta):
        raise ICSPropertyError(f"Malformed DURATION value {value!r}", "DURATION")
    return value
