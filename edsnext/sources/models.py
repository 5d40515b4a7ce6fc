"""Data models for calendar source management."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..ics.models import Event
from .exceptions import SourceError


class Source(BaseModel):
    """An entry of the EDS source directory."""

    object_path: str = Field(..., description="D-Bus object path of the source")
    uid: str = Field(..., description="Source UID")
    display_name: Optional[str] = Field(default=None, description="Human-readable name")
    has_calendar: bool = Field(default=False, description="Whether the source is a calendar")

    model_config = ConfigDict(frozen=True)


class Calendar(BaseModel):
    """A calendar-capable source."""

    uid: str = Field(..., description="Source UID")
    display_name: Optional[str] = Field(default=None, description="Human-readable name")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_source(cls, source: Source) -> "Calendar":
        return cls(uid=source.uid, display_name=source.display_name)

    @property
    def label(self) -> str:
        """Name used in messages: the display name, or the UID without one."""
        return self.display_name or self.uid


class CalendarHandle(BaseModel):
    """Connection handle returned when a calendar is opened."""

    object_path: str
    bus_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class CalendarFetchResult(BaseModel):
    """Outcome of fetching one calendar: its events, or the error that stopped it."""

    calendar: Calendar
    events: List[Event] = Field(default_factory=list)
    error: Optional[SourceError] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def event_count(self) -> int:
        return len(self.events)
