"""Data models for calendar event processing."""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..timezone import absolute_delta
from .exceptions import ICSPropertyError


class EventStatus(str, Enum):
    """iCalendar STATUS values understood by edsnext."""

    TENTATIVE = "TENTATIVE"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    NEEDS_ACTION = "NEEDS-ACTION"
    COMPLETED = "COMPLETED"
    IN_PROCESS = "IN-PROCESS"
    DRAFT = "DRAFT"
    FINAL = "FINAL"

    @classmethod
    def from_ical(cls, value: Optional[str]) -> Optional["EventStatus"]:
        """Map a raw STATUS value to the enumeration.

        Unrecognized values map to ``None`` rather than raising.
        """
        if value is None:
            return None
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


class PartialDateTime(BaseModel):
    """Date/time value in which any field may be missing."""

    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    hour: Optional[int] = None
    minute: Optional[int] = None
    second: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_value(cls, value: date) -> "PartialDateTime":
        """Build from a decoded ``date`` or ``datetime``; dates carry no time fields."""
        if isinstance(value, datetime):
            return cls(
                year=value.year,
                month=value.month,
                day=value.day,
                hour=value.hour,
                minute=value.minute,
                second=value.second,
            )
        return cls(year=value.year, month=value.month, day=value.day)

    @property
    def has_time(self) -> bool:
        return self.hour is not None or self.minute is not None or self.second is not None

    def complete(self, today: date) -> datetime:
        """Fill in missing fields and build a naive wall-clock datetime.

        Missing year, month and day come from ``today``; missing hour, minute
        and second default to zero.

        Raises:
            ICSPropertyError: If the completed fields do not form a valid date/time
        """
        year = self.year if self.year is not None else today.year
        month = self.month if self.month is not None else today.month
        day = self.day if self.day is not None else today.day

        # clamp leap seconds
        second = min(self.second or 0, 59)

        try:
            return datetime(year, month, day, self.hour or 0, self.minute or 0, second)
        except ValueError as e:
            raise ICSPropertyError(f"Invalid date/time value {self!r}: {e}") from e


class Event(BaseModel):
    """Normalized calendar event.

    Every field is optional. ``ends >= starts`` is not enforced; events that
    violate it, or lack either bound, are treated as incomplete and never take
    part in now/next classification.
    """

    uid: Optional[str] = Field(default=None, description="Event UID")
    title: Optional[str] = Field(default=None, description="SUMMARY text")
    description: Optional[str] = Field(default=None, description="DESCRIPTION text")
    status: Optional[EventStatus] = Field(default=None, description="Recognized STATUS")
    starts: Optional[datetime] = Field(default=None, description="Zoned start instant")
    ends: Optional[datetime] = Field(default=None, description="Zoned end instant")

    # Metadata
    calendar: Optional[str] = Field(default=None, description="Owning calendar display name")
    field_errors: Dict[str, str] = Field(
        default_factory=dict, description="Per-property extraction failures"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def has_bounds(self) -> bool:
        return self.starts is not None and self.ends is not None

    @property
    def is_complete(self) -> bool:
        """Both bounds present and the end not before the start."""
        return self.has_bounds and self.ends >= self.starts  # type: ignore[operator]

    @property
    def duration(self) -> Optional[timedelta]:
        """Absolute elapsed time between start and end, if both are known."""
        if not self.has_bounds:
            return None
        return absolute_delta(self.ends, self.starts)  # type: ignore[arg-type]

    @property
    def is_cancelled(self) -> bool:
        return self.status == EventStatus.CANCELLED

    @property
    def display_title(self) -> str:
        return self.title or "(untitled)"


class RecurrenceWindow(BaseModel):
    """Time range bounding a calendar query and recurrence expansion."""

    start: datetime = Field(..., description="Lower bound")
    until: datetime = Field(..., description="Upper bound")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "RecurrenceWindow":
        if self.start.tzinfo is None or self.until.tzinfo is None:
            raise ValueError("Window boundaries must be timezone-aware")
        if self.until < self.start:
            raise ValueError("Window end must not precede its start")
        return self
