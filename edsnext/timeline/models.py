"""Data models for timeline classification."""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..ics.models import Event, EventStatus
from ..sources.exceptions import SourceError


class StatusPolicy(str, Enum):
    """Which event statuses take part in the timeline."""

    PERMISSIVE = "permissive"  # drop only cancelled events
    RESTRICTIVE = "restrictive"  # keep only active statuses (or no status)


ACTIVE_STATUSES = frozenset(
    {
        EventStatus.TENTATIVE,
        EventStatus.CONFIRMED,
        EventStatus.COMPLETED,
        EventStatus.FINAL,
        EventStatus.IN_PROCESS,
    }
)


class ClassificationKind(str, Enum):
    """Outcome of a now/next classification."""

    CURRENT = "current"
    NEXT = "next"
    NONE_TODAY = "none_today"
    NONE = "none"


class Classification(BaseModel):
    """Result of classifying a timeline relative to a moment.

    ``event`` and ``remaining`` are set for ``CURRENT`` (time until it ends)
    and ``NEXT`` (time until it starts) only.
    """

    kind: ClassificationKind
    event: Optional[Event] = None
    remaining: Optional[timedelta] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def current(cls, event: Event, remaining: timedelta) -> "Classification":
        return cls(kind=ClassificationKind.CURRENT, event=event, remaining=remaining)

    @classmethod
    def next(cls, event: Event, remaining: timedelta) -> "Classification":
        return cls(kind=ClassificationKind.NEXT, event=event, remaining=remaining)

    @classmethod
    def none_today(cls) -> "Classification":
        return cls(kind=ClassificationKind.NONE_TODAY)

    @classmethod
    def none(cls) -> "Classification":
        return cls(kind=ClassificationKind.NONE)


class DayEntry(BaseModel):
    """One row of the per-day event view."""

    title: str
    starts: Optional[datetime] = None
    ends: Optional[datetime] = None
    calendar: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CalendarFailure(BaseModel):
    """A calendar that could not be fetched."""

    calendar: str = Field(..., description="Calendar display name or UID")
    operation: Optional[str] = Field(default=None, description="External call that failed")
    message: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_error(cls, calendar: str, error: SourceError) -> "CalendarFailure":
        return cls(
            calendar=calendar,
            operation=getattr(error, "operation", None),
            message=error.message,
        )

    def __str__(self) -> str:
        operation = f" ({self.operation})" if self.operation else ""
        return f"{self.calendar}{operation}: {self.message}"


class IncompleteTimelineError(Exception):
    """Raised when one or more selected calendars could not be fetched."""

    def __init__(self, failures: List[CalendarFailure]):
        self.failures = failures
        self.message = "Failed to fetch " + "; ".join(str(failure) for failure in failures)
        super().__init__(self.message)
