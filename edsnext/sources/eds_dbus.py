"""Evolution Data Server collaborators over the D-Bus session bus.

Requires PyGObject (``pip install edsnext[eds]``). Blocking ``Gio`` calls run
in a worker thread so that calendars can still be fetched concurrently.
"""

import asyncio
import logging
from typing import Any, List, Optional

import gi

gi.require_version("Gio", "2.0")

from gi.repository import Gio, GLib  # noqa: E402

from .directory import sources_from_managed_objects  # noqa: E402
from .exceptions import SourceConnectionError, SourceDirectoryError  # noqa: E402
from .models import CalendarHandle, Source  # noqa: E402

logger = logging.getLogger(__name__)

SOURCES_BUS_NAME = "org.gnome.evolution.dataserver.Sources5"
SOURCES_OBJECT_PATH = "/org/gnome/evolution/dataserver/SourceManager"
OBJECT_MANAGER_INTERFACE = "org.freedesktop.DBus.ObjectManager"

CALENDAR_BUS_NAME = "org.gnome.evolution.dataserver.Calendar8"
CALENDAR_FACTORY_PATH = "/org/gnome/evolution/dataserver/CalendarFactory"
CALENDAR_FACTORY_INTERFACE = "org.gnome.evolution.dataserver.CalendarFactory"
CALENDAR_INTERFACE = "org.gnome.evolution.dataserver.Calendar"

DEFAULT_CALL_TIMEOUT_MS = 25000


class EDSBus:
    """Thin wrapper around a session bus connection."""

    def __init__(self, connection: Optional[Any] = None, timeout_ms: int = DEFAULT_CALL_TIMEOUT_MS):
        self._connection = connection
        self.timeout_ms = timeout_ms

    @property
    def connection(self) -> Any:
        if self._connection is None:
            self._connection = Gio.bus_get_sync(Gio.BusType.SESSION, None)
        return self._connection

    def call_sync(
        self,
        bus_name: str,
        object_path: str,
        interface: str,
        method: str,
        parameters: Optional[Any],
        reply_type: str,
    ) -> Any:
        """Call a method and return its unpacked reply tuple."""
        logger.debug(f"D-Bus call {interface}.{method} on {bus_name}{object_path}")
        reply = self.connection.call_sync(
            bus_name,
            object_path,
            interface,
            method,
            parameters,
            GLib.VariantType.new(reply_type),
            Gio.DBusCallFlags.NONE,
            self.timeout_ms,
            None,
        )
        return reply.unpack()

    async def call(self, *args: Any) -> Any:
        return await asyncio.to_thread(self.call_sync, *args)


class EDSSourceDirectory:
    """Source directory backed by the EDS source registry."""

    def __init__(self, bus: Optional[EDSBus] = None):
        self.bus = bus or EDSBus()

    async def list_sources(self) -> List[Source]:
        try:
            (objects,) = await self.bus.call(
                SOURCES_BUS_NAME,
                SOURCES_OBJECT_PATH,
                OBJECT_MANAGER_INTERFACE,
                "GetManagedObjects",
                None,
                "(a{oa{sa{sv}}})",
            )
        except GLib.Error as e:
            raise SourceDirectoryError(
                f"Failed to list EDS sources: {e.message}", operation="list_sources"
            ) from e
        return sources_from_managed_objects(objects)


class EDSCalendarService:
    """Calendar open/query service backed by the EDS calendar factory."""

    def __init__(self, bus: Optional[EDSBus] = None):
        self.bus = bus or EDSBus()

    async def open_calendar(self, uid: str) -> CalendarHandle:
        try:
            object_path, bus_name = await self.bus.call(
                CALENDAR_BUS_NAME,
                CALENDAR_FACTORY_PATH,
                CALENDAR_FACTORY_INTERFACE,
                "OpenCalendar",
                GLib.Variant("(s)", (uid,)),
                "(ss)",
            )
        except GLib.Error as e:
            raise SourceConnectionError(
                f"OpenCalendar failed: {e.message}", source_name=uid, operation="open_calendar"
            ) from e
        return CalendarHandle(object_path=object_path, bus_name=bus_name or CALENDAR_BUS_NAME)

    async def query(self, handle: CalendarHandle, predicate: str) -> List[str]:
        try:
            (objects,) = await self.bus.call(
                handle.bus_name or CALENDAR_BUS_NAME,
                handle.object_path,
                CALENDAR_INTERFACE,
                "GetObjectList",
                GLib.Variant("(s)", (predicate,)),
                "(as)",
            )
        except GLib.Error as e:
            raise SourceConnectionError(
                f"GetObjectList failed: {e.message}", operation="query"
            ) from e
        return list(objects)
