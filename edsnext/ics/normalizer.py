"""Component to Event normalization."""

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Any, Optional

from ..timezone import TimezoneError, shift
from ..utils.logging import VERBOSE
from .exceptions import ICSPropertyError
from .models import Event
from .properties import (
    extract_datetime,
    extract_duration,
    extract_status,
    extract_text,
    extract_uid,
)

logger = logging.getLogger(__name__)


def _extract_instant(
    component: Any,
    name: str,
    now: datetime,
    local_tz: Optional[tzinfo],
    field_errors: dict[str, str],
    uid: Optional[str],
) -> Optional[datetime]:
    try:
        return extract_datetime(component, name, now, local_tz)
    except TimezoneError as e:
        logger.warning(f"Unresolvable timezone in {name} of event {uid!r}: {e}")
        field_errors[name] = str(e)
    except ICSPropertyError as e:
        logger.warning(f"Malformed {name} in event {uid!r}: {e.message}")
        field_errors[name] = e.message
    return None


def normalize_event(
    component: Any,
    now: datetime,
    local_tz: Optional[tzinfo] = None,
    calendar: Optional[str] = None,
) -> Event:
    """Build an Event from a parsed VEVENT component.

    Never fails: each field is extracted on its own, and a field whose value is
    malformed or whose timezone cannot be resolved is left absent. Such
    failures are logged and recorded in ``Event.field_errors``.

    Args:
        component: Parsed VEVENT component
        now: Current moment used to complete partial date/time values
        local_tz: Zone for floating values, the system zone if not given
        calendar: Display name of the owning calendar

    Returns:
        The normalized event
    """
    field_errors: dict[str, str] = {}
    uid = extract_uid(component)

    starts = _extract_instant(component, "DTSTART", now, local_tz, field_errors, uid)
    ends = _extract_instant(component, "DTEND", now, local_tz, field_errors, uid)

    if ends is None and starts is not None and "DTEND" not in field_errors:
        try:
            duration = extract_duration(component)
        except ICSPropertyError as e:
            logger.warning(f"Malformed DURATION in event {uid!r}: {e.message}")
            field_errors["DURATION"] = e.message
            duration = None
        if duration is not None:
            # days are nominal (wall clock), the rest is exact time
            ends = shift(
                starts + timedelta(days=duration.days),
                timedelta(seconds=duration.seconds, microseconds=duration.microseconds),
            )

    event = Event(
        uid=uid,
        title=extract_text(component, "SUMMARY"),
        description=extract_text(component, "DESCRIPTION"),
        status=extract_status(component),
        starts=starts,
        ends=ends,
        calendar=calendar,
        field_errors=field_errors,
    )
    logger.log(VERBOSE, f"Normalized event {uid!r}: {event.starts} -> {event.ends}")
    return event
