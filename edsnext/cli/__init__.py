"""CLI module for edsnext.

Wires settings, logging, the EDS collaborators, the timeline assembler and
the console renderer together for the three outputs: the now/next line, the
calendar list and the per-day table.
"""

import argparse
import logging
import sys
from datetime import date, datetime
from typing import List, Optional

from ..config import get_settings
from ..display import ConsoleRenderer
from ..sources import SourceError, SourceManager
from ..sources.fetcher import near_window
from ..sources.protocols import CalendarService, SourceDirectory
from ..timeline import IncompleteTimelineError, TimelineAssembler, day_events
from ..timezone import now_local
from ..utils.logging import setup_logging
from .config import apply_cli_overrides
from .parser import TODAY, create_parser, parse_date

logger = logging.getLogger(__name__)


def _eds_collaborators() -> "tuple[SourceDirectory, CalendarService]":
    # PyGObject is an optional extra; only the live run needs it
    from ..sources.eds_dbus import EDSBus, EDSCalendarService, EDSSourceDirectory  # noqa: PLC0415

    bus = EDSBus()
    return EDSSourceDirectory(bus), EDSCalendarService(bus)


async def main_entry(
    argv: Optional[List[str]] = None,
    directory: Optional[SourceDirectory] = None,
    service: Optional[CalendarService] = None,
    now: Optional[datetime] = None,
) -> int:
    """Main entry point with argument parsing.

    Args:
        argv: Command line arguments, ``sys.argv[1:]`` if not given
        directory: Source directory, the EDS session bus if not given
        service: Calendar service, the EDS session bus if not given
        now: Current moment, the local wall clock if not given

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    day: Optional[date] = None
    if args.day is not None and args.day != TODAY:
        try:
            day = parse_date(args.day)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))

    settings = apply_cli_overrides(get_settings(), args)
    setup_logging(settings)

    if directory is None or service is None:
        default_directory, default_service = _eds_collaborators()
        directory = directory or default_directory
        service = service or default_service

    now = now or now_local()
    manager = SourceManager(directory, service, settings)
    assembler = TimelineAssembler.from_settings(settings)
    renderer = ConsoleRenderer(settings)
    whitelist = settings.calendars

    try:
        if args.list:
            print(renderer.render_calendars(await manager.list_calendars()))
            return 0

        if args.day is not None:
            day = day or now.date()
            reference = datetime.combine(day, now.timetz())
            results = await manager.fetch_all(now, near_window(reference), whitelist)
            events = assembler.assemble(results, whitelist)
            print(renderer.render_day(day_events(events, day, now.tzinfo), day))
            return 0

        results = await manager.fetch_all(now, near_window(now), whitelist)
        print(renderer.render_classification(assembler.whats_next(results, now, whitelist)))
        return 0

    except IncompleteTimelineError as e:
        logger.debug(f"Timeline incomplete: {e.message}")
        print(renderer.render_failures(e.failures), file=sys.stderr)
        return 1
    except SourceError as e:
        logger.debug(f"Source error: {e.message}")
        print(renderer.render_error(e.message), file=sys.stderr)
        return 1


__all__ = ["apply_cli_overrides", "create_parser", "main_entry", "parse_date"]
