"""Shared test configuration and fixtures."""

import logging
import textwrap
from datetime import datetime
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import pytest

from edsnext.config.settings import reset_settings
from edsnext.ics.parser import parse_calendar_object
from edsnext.sources.models import CalendarHandle, Source

BERLIN = ZoneInfo("Europe/Berlin")

# Monday 2026-10-19 09:15 in Berlin (CEST, UTC+2)
NOW = datetime(2026, 10, 19, 9, 15, tzinfo=BERLIN)


def _vevent(uid: str = "event-1", summary: Optional[str] = "Meeting", *lines: str) -> str:
    """Build the text of a single VEVENT record."""
    body = [f"UID:{uid}"]
    if summary is not None:
        body.append(f"SUMMARY:{summary}")
    body.extend(lines)
    return "BEGIN:VEVENT\n" + "\n".join(body) + "\nEND:VEVENT\n"


def _make_component(text: str) -> Any:
    """Parse record text and return its single VEVENT component."""
    components = parse_calendar_object(textwrap.dedent(text).strip())
    assert len(components) == 1
    return components[0]


def _source_data(display_name: Optional[str] = None, calendar: bool = True) -> str:
    """Build the key file text EDS publishes for a source."""
    lines = ["[Data Source]"]
    if display_name is not None:
        lines.append(f"DisplayName={display_name}")
    lines.append("Enabled=true")
    if calendar:
        lines.extend(["", "[Calendar]", "BackendName=local"])
    return "\n".join(lines) + "\n"


class FakeSourceDirectory:
    """In-memory source directory."""

    def __init__(self, sources: List[Source]):
        self.sources = sources
        self.calls = 0

    async def list_sources(self) -> List[Source]:
        self.calls += 1
        return list(self.sources)


class FakeCalendarService:
    """In-memory calendar service keyed by source UID.

    ``failures`` maps a UID to the exception raised by ``query``.
    """

    def __init__(
        self,
        records: Dict[str, List[str]],
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.records = records
        self.failures = failures or {}
        self.queries: List[str] = []

    async def open_calendar(self, uid: str) -> CalendarHandle:
        return CalendarHandle(object_path=f"/calendar/{uid}", bus_name=uid)

    async def query(self, handle: CalendarHandle, predicate: str) -> List[str]:
        self.queries.append(predicate)
        uid = handle.bus_name or ""
        if uid in self.failures:
            raise self.failures[uid]
        return list(self.records.get(uid, []))


@pytest.fixture(autouse=True)
def clean_settings():
    """Ensure each test starts without a cached settings instance."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo setup_logging so that caplog sees package records in every test."""
    yield
    package_logger = logging.getLogger("edsnext")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def berlin() -> ZoneInfo:
    return BERLIN


@pytest.fixture
def now() -> datetime:
    """Fixed current moment."""
    return NOW


@pytest.fixture
def calendar_sources() -> List[Source]:
    """A Work and a Family calendar plus an address book."""
    return [
        Source(
            object_path="/org/gnome/evolution/dataserver/SourceManager/Source_1",
            uid="work-uid",
            display_name="Work",
            has_calendar=True,
        ),
        Source(
            object_path="/org/gnome/evolution/dataserver/SourceManager/Source_2",
            uid="family-uid",
            display_name="Family",
            has_calendar=True,
        ),
        Source(
            object_path="/org/gnome/evolution/dataserver/SourceManager/Source_3",
            uid="contacts-uid",
            display_name="Contacts",
            has_calendar=False,
        ),
    ]


@pytest.fixture
def vevent():
    """Factory for VEVENT record text: ``vevent(uid, summary, *lines)``."""
    return _vevent


@pytest.fixture
def make_component():
    """Factory parsing record text into its single VEVENT component."""
    return _make_component


@pytest.fixture
def source_data():
    """Factory for source key file text."""
    return _source_data


@pytest.fixture
def fake_directory(calendar_sources: List[Source]) -> FakeSourceDirectory:
    return FakeSourceDirectory(calendar_sources)


@pytest.fixture
def fake_service_class():
    """The in-memory calendar service class, for tests that build their own."""
    return FakeCalendarService
