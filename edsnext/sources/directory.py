"""EDS source directory entries and calendar discovery."""

import configparser
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import Calendar, Source

logger = logging.getLogger(__name__)

SOURCE_INTERFACE = "org.gnome.evolution.dataserver.Source"

DATA_SOURCE_GROUP = "Data Source"
DISPLAY_NAME_KEY = "DisplayName"
CALENDAR_GROUP = "Calendar"


def parse_source_data(data: str) -> Tuple[Optional[str], bool]:
    """Read the display name and calendar capability from a source key file.

    EDS describes every source with a GLib key file. The display name lives in
    ``[Data Source] DisplayName``; a ``[Calendar]`` group marks the source as
    a calendar.

    Args:
        data: Key file text from the source's ``Data`` property

    Returns:
        ``(display_name, has_calendar)``; unreadable data yields ``(None, False)``
    """
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        parser.read_string(data)
    except configparser.Error as e:
        logger.warning(f"Ignoring unreadable source data: {e}")
        return None, False

    display_name = parser.get(DATA_SOURCE_GROUP, DISPLAY_NAME_KEY, fallback=None)
    return display_name or None, parser.has_section(CALENDAR_GROUP)


def source_from_managed_object(
    object_path: str, interfaces: Dict[str, Dict[str, Any]]
) -> Optional[Source]:
    """Build a Source from one ``GetManagedObjects`` entry.

    Objects that do not export the source interface, or that lack a UID, are
    skipped.
    """
    properties = interfaces.get(SOURCE_INTERFACE)
    if properties is None:
        return None

    uid = properties.get("UID")
    if not uid:
        logger.debug(f"Skipping source {object_path} without UID")
        return None

    display_name, has_calendar = parse_source_data(properties.get("Data") or "")
    return Source(
        object_path=object_path,
        uid=str(uid),
        display_name=display_name,
        has_calendar=has_calendar,
    )


def sources_from_managed_objects(objects: Dict[str, Dict[str, Dict[str, Any]]]) -> List[Source]:
    """Build Sources from a full ``GetManagedObjects`` reply."""
    sources = []
    for object_path, interfaces in objects.items():
        source = source_from_managed_object(object_path, interfaces)
        if source is not None:
            sources.append(source)
    return sources


def list_calendars(sources: Iterable[Source]) -> List[Calendar]:
    """Select calendar sources, ordered by display name then UID.

    Names compare case-insensitively; sources without a display name sort last.
    """
    calendars = [Calendar.from_source(source) for source in sources if source.has_calendar]
    return sorted(
        calendars,
        key=lambda calendar: (
            calendar.display_name is None,
            (calendar.display_name or "").casefold(),
            calendar.uid,
        ),
    )
