"""Console text renderer for calendars, now/next and the day view."""

import logging
from datetime import date
from typing import Any, List, Optional

from ..sources.models import Calendar
from ..timeline.models import CalendarFailure, Classification, ClassificationKind, DayEntry
from ..utils.helpers import format_duration, format_time

logger = logging.getLogger(__name__)


class ConsoleRenderer:
    """Renders edsnext results as plain console text."""

    def __init__(self, settings: Any = None, width: int = 60) -> None:
        """Initialize console renderer.

        Args:
            settings: Application settings
            width: Maximum line width for titles and rules
        """
        self.settings = settings
        self.width = width

    def render_classification(self, classification: Classification) -> str:
        """Render the one-line now/next summary."""
        event = classification.event
        remaining = classification.remaining

        if classification.kind == ClassificationKind.CURRENT and event and remaining is not None:
            title = self._truncate_text(event.display_title, self.width)
            ends = format_time(event.ends)  # type: ignore[arg-type]
            return f"{title} ends in {format_duration(remaining)} (at {ends})"

        if classification.kind == ClassificationKind.NEXT and event and remaining is not None:
            title = self._truncate_text(event.display_title, self.width)
            starts = format_time(event.starts)  # type: ignore[arg-type]
            return f"{title} in {format_duration(remaining)} (at {starts})"

        if classification.kind == ClassificationKind.NONE_TODAY:
            return "No more events today"

        return "No upcoming events"

    def render_calendars(self, calendars: List[Calendar]) -> str:
        """Render the calendar list, one ``name (uid)`` per line."""
        if not calendars:
            return "No calendars found"
        return "\n".join(
            f"{calendar.display_name or '(unnamed)'} ({calendar.uid})" for calendar in calendars
        )

    def render_day(self, entries: List[DayEntry], day: Optional[date] = None) -> str:
        """Render the per-day table of titles with start and end times."""
        lines = []
        if day is not None:
            lines.append(day.strftime("%A, %B %d"))
            lines.append("-" * self.width)

        if not entries:
            lines.append("No events")
            return "\n".join(lines)

        for entry in entries:
            start = format_time(entry.starts) if entry.starts else ""
            end = format_time(entry.ends) if entry.ends else ""
            span = f"{start} - {end}" if end else start
            title = self._truncate_text(entry.title, self.width - 20)
            calendar = f"  [{entry.calendar}]" if entry.calendar else ""
            lines.append(f"{span:>17}  {title}{calendar}")

        return "\n".join(lines)

    def render_failures(self, failures: List[CalendarFailure]) -> str:
        """Render calendars that could not be fetched."""
        return "\n".join(f"Error: could not fetch calendar {failure}" for failure in failures)

    def render_error(self, error_message: str) -> str:
        return f"Error: {error_message}"

    def _truncate_text(self, text: str, max_length: int) -> str:
        """Truncate text to fit within specified length.

        Args:
            text: Text to truncate
            max_length: Maximum length allowed

        Returns:
            Truncated text with ellipsis if needed
        """
        if len(text) <= max_length:
            return text

        return text[: max_length - 3] + "..."
