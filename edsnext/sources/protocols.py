"""Interfaces of the external calendar collaborators."""

from typing import List, Protocol, runtime_checkable

from .models import CalendarHandle, Source


@runtime_checkable
class SourceDirectory(Protocol):
    """Lists the configured data sources."""

    async def list_sources(self) -> List[Source]:
        """Return every source known to the directory."""
        ...


@runtime_checkable
class CalendarService(Protocol):
    """Opens calendars and runs queries against them."""

    async def open_calendar(self, uid: str) -> CalendarHandle:
        """Open the calendar backing source ``uid``."""
        ...

    async def query(self, handle: CalendarHandle, predicate: str) -> List[str]:
        """Return the raw iCalendar records matching ``predicate``."""
        ...
