"""RRULE expansion for recurring (master) VEVENT components."""

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime, tzinfo
from typing import Any, Optional

from dateutil.rrule import rrulestr

from ..timezone import UTC, TimezoneError, resolve_timezone, shift, to_utc
from ..utils.logging import VERBOSE
from .exceptions import ICSPropertyError
from .models import Event, RecurrenceWindow

logger = logging.getLogger(__name__)

# Hard upper bound on generated instances per master per window
MAX_OCCURRENCES = 32

# Serialization order of recurrence properties after DTSTART
RULE_PROPERTIES = ("RRULE", "EXRULE")
RECURRENCE_PROPERTIES = ("RRULE", "RDATE", "EXDATE", "EXRULE")

_UTC_FORMAT = "%Y%m%dT%H%M%SZ"
_LOCAL_FORMAT = "%Y%m%dT%H%M%S"


class RRuleExpansionError(Exception):
    """Base exception for RRULE expansion errors."""


class RRuleParseError(RRuleExpansionError):
    """Error parsing serialized recurrence rule text."""


def is_recurring(component: Any) -> bool:
    """A component is a recurring master iff it carries an RRULE."""
    return component.get("RRULE") is not None


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _anchor(value: date, starts: Optional[datetime], zone: Optional[tzinfo] = None) -> datetime:
    """Turn a date or naive datetime into an aware datetime.

    Dates take the master's start time of day; naive values take ``zone``, or
    the master's zone (UTC without a master start) when no zone is given.
    """
    if zone is None:
        zone = starts.tzinfo if starts is not None else UTC
    if not isinstance(value, datetime):
        time_of_day = starts.time() if starts is not None else datetime.min.time()
        return datetime.combine(value, time_of_day, tzinfo=zone)
    return value.replace(tzinfo=zone)


def _format_dtstart(starts: datetime) -> Optional[str]:
    """DTSTART line for ``starts``, or ``None`` when its zone has no name.

    Only named zones and UTC can be written into rule text; other starts go
    to :func:`parse_recurrence` directly.
    """
    key = getattr(starts.tzinfo, "key", None)
    if key:
        try:
            resolve_timezone(key)
        except TimezoneError:
            # zones loaded from a file may carry keys the zone table does not know
            key = None
    if key:
        return f"DTSTART;TZID={key}:{starts.strftime(_LOCAL_FORMAT)}"
    if starts.tzinfo == UTC:
        return f"DTSTART:{starts.strftime(_UTC_FORMAT)}"
    return None


def _format_rule(name: str, prop: Any, starts: Optional[datetime]) -> str:
    if not isinstance(prop, dict):
        return f"{name}:{prop}"

    text = prop.to_ical().decode("utf-8")
    until = _as_list(prop.get("UNTIL"))
    if not until:
        return f"{name}:{text}"

    # aware DTSTART requires a UTC UNTIL in the rule grammar
    value = until[0]
    if isinstance(value, datetime) and value.tzinfo is not None:
        until_utc = to_utc(value)
    else:
        until_utc = to_utc(_anchor(value, starts))
    parts = [
        f"UNTIL={until_utc.strftime(_UTC_FORMAT)}" if part.upper().startswith("UNTIL=") else part
        for part in text.split(";")
    ]
    return f"{name}:{';'.join(parts)}"


def _format_dates(name: str, prop: Any, starts: Optional[datetime]) -> str:
    dts = getattr(prop, "dts", None)
    if dts is None:
        raise ICSPropertyError(f"Malformed {name} value {prop!r}", name)

    params = getattr(prop, "params", None) or {}
    tzid = params.get("TZID")
    zone = resolve_timezone(tzid) if tzid else None

    values = []
    for item in dts:
        value = getattr(item, "dt", item)
        if isinstance(value, tuple):
            # PERIOD values only contribute their start
            value = value[0]
        if isinstance(value, datetime) and value.tzinfo is not None and zone is not None:
            value = value.replace(tzinfo=None)
        if isinstance(value, datetime) and value.tzinfo is not None:
            instant = value
        elif isinstance(value, date):
            instant = _anchor(value, starts, zone)
        else:
            raise ICSPropertyError(f"Malformed {name} value {value!r}", name)
        values.append(to_utc(instant).strftime(_UTC_FORMAT))

    return f"{name}:{','.join(values)}"


def serialize_recurrence(component: Any, starts: Optional[datetime]) -> str:
    """Serialize a master's recurrence properties into rule text.

    Lines come out in a fixed order: DTSTART, RRULE, RDATE, EXDATE, EXRULE.
    Absent properties are omitted. RDATE/EXDATE values and rule UNTIL parts
    are written as UTC instants so that they compare cleanly with the zoned
    DTSTART. A start in an unnamed zone is left out of the text and must be
    handed to :func:`parse_recurrence` instead.

    Args:
        component: Parsed master VEVENT component
        starts: The master's normalized start

    Returns:
        Newline separated rule text for ``dateutil.rrule.rrulestr``

    Raises:
        ICSPropertyError: If an RDATE/EXDATE value is malformed
        TimezoneResolutionError: If an RDATE/EXDATE TZID is unknown
    """
    lines = []
    dtstart = _format_dtstart(starts) if starts is not None else None
    if dtstart is not None:
        lines.append(dtstart)

    for name in RECURRENCE_PROPERTIES:
        for prop in _as_list(component.get(name)):
            if name in RULE_PROPERTIES:
                lines.append(_format_rule(name, prop, starts))
            else:
                lines.append(_format_dates(name, prop, starts))

    return "\n".join(lines)


def parse_recurrence(rule_text: str, dtstart: Optional[datetime] = None) -> Any:
    """Parse serialized rule text into a dateutil ``rruleset``.

    Args:
        rule_text: Text from :func:`serialize_recurrence`
        dtstart: Start used when the text carries no DTSTART line; occurrences
            keep its wall-clock time in its zone

    Raises:
        RRuleParseError: If the text is empty or cannot be parsed
    """
    if not rule_text or not rule_text.strip():
        raise RRuleParseError("Empty recurrence rule text")

    try:
        return rrulestr(rule_text, dtstart=dtstart, forceset=True, tzids=resolve_timezone)
    except (ValueError, TypeError, KeyError, TimezoneError) as e:
        raise RRuleParseError(f"Invalid recurrence rule text {rule_text!r}: {e}") from e


class RRuleExpander:
    """Client-side RRULE expansion.

    Expands a master component into concrete occurrences strictly inside a
    window using ``dateutil``. Every failure mode (missing start, unparseable
    rule, window conversion) is logged and produces no occurrences, so a
    single bad master never stops the rest of a calendar from loading.
    """

    def __init__(self, max_occurrences: int = MAX_OCCURRENCES):
        """Initialize the expander.

        Args:
            max_occurrences: Cap on instances per master, clamped to 1..32
        """
        self.max_occurrences = max(1, min(max_occurrences, MAX_OCCURRENCES))

    @classmethod
    def from_settings(cls, settings: Any) -> "RRuleExpander":
        return cls(max_occurrences=getattr(settings, "rrule_max_occurrences", MAX_OCCURRENCES))

    def expand(
        self,
        component: Any,
        template: Event,
        window: RecurrenceWindow,
        local_tz: Optional[tzinfo] = None,
        exclude: Optional[Iterable[datetime]] = None,
    ) -> list[Event]:
        """Expand a master component into events inside ``window``.

        Args:
            component: Parsed master VEVENT component
            template: The master normalized as an Event
            window: Expansion range; occurrences strictly after
                ``start`` and strictly before ``until`` are produced
            local_tz: Caller's zone for the window, defaults to the window's own
            exclude: Instants overridden by detached instances

        Returns:
            Occurrence events ordered by start, at most ``max_occurrences``
        """
        if template.starts is None:
            logger.warning(f"Recurring event {template.uid!r} has no usable DTSTART, skipping")
            return []

        try:
            rule_text = serialize_recurrence(component, template.starts)
        except (ICSPropertyError, TimezoneError) as e:
            logger.warning(f"Cannot serialize recurrence of event {template.uid!r}: {e}")
            return []

        try:
            rule_set = parse_recurrence(rule_text, template.starts)
        except RRuleParseError as e:
            logger.warning(f"Skipping recurring event {template.uid!r}: {e}")
            return []

        try:
            after, before = self._convert_window(window, local_tz)
        except (TimezoneError, ValueError, OverflowError) as e:
            logger.warning(f"Cannot convert expansion window for event {template.uid!r}: {e}")
            return []

        excluded = {to_utc(instant) for instant in exclude or ()}
        try:
            # yields one past the cap so that truncation can be reported
            occurrences = list(self._occurrences(rule_set, after, before, excluded))
        except (TypeError, ValueError) as e:
            logger.warning(f"RRULE evaluation failed for event {template.uid!r}: {e}")
            return []

        if len(occurrences) > self.max_occurrences:
            logger.warning(
                f"Limiting expansion of event {template.uid!r} to {self.max_occurrences} occurrences"
            )
            occurrences = occurrences[: self.max_occurrences]

        logger.log(
            VERBOSE,
            f"Expanded event {template.uid!r} into {len(occurrences)} occurrence(s) "
            f"between {after.isoformat()} and {before.isoformat()}"
        )
        return self.generate_event_instances(template, occurrences)

    def _convert_window(
        self, window: RecurrenceWindow, local_tz: Optional[tzinfo]
    ) -> tuple[datetime, datetime]:
        zone = local_tz or window.start.tzinfo
        if zone is None:
            raise TimezoneError("Expansion window must be timezone-aware")
        return window.start.astimezone(zone), window.until.astimezone(zone)

    def _occurrences(
        self,
        rule_set: Any,
        after: datetime,
        before: datetime,
        excluded: set[datetime],
    ) -> Iterator[datetime]:
        produced = 0
        for instant in rule_set.xafter(after, inc=False):
            if instant >= before:
                break
            if to_utc(instant) in excluded:
                continue
            yield instant
            produced += 1
            if produced > self.max_occurrences:
                break

    def generate_event_instances(self, template: Event, occurrences: list[datetime]) -> list[Event]:
        """Generate Event instances for each occurrence.

        Each instance keeps the master's fields; ``starts`` is the occurrence
        and ``ends`` is the occurrence plus the master's absolute duration (no
        ``ends`` when the master has none).
        """
        duration = template.duration
        return [
            template.model_copy(
                update={
                    "starts": instant,
                    "ends": shift(instant, duration) if duration is not None else None,
                }
            )
            for instant in occurrences
        ]
