"""Source manager coordinating calendar discovery and concurrent fetching."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from ..ics.models import RecurrenceWindow
from ..ics.rrule_expander import RRuleExpander
from .directory import list_calendars
from .exceptions import SourceDirectoryError, SourceError, SourceTimeoutError
from .fetcher import CalendarFetcher, near_window
from .models import Calendar, CalendarFetchResult, Source
from .protocols import CalendarService, SourceDirectory

logger = logging.getLogger(__name__)

DEFAULT_FETCH_CONCURRENCY = 4
DEFAULT_FETCH_TIMEOUT = 30.0


class SourceManager:
    """Discovers calendars and fetches them concurrently.

    Each calendar is fetched in its own task, bounded by a semaphore. All
    tasks are awaited before results are returned, so callers always see the
    complete set. A calendar that fails yields a result carrying its error and
    never affects its siblings.
    """

    def __init__(
        self,
        directory: SourceDirectory,
        service: CalendarService,
        settings: Any = None,
        fetcher: Optional[CalendarFetcher] = None,
    ):
        """Initialize source manager.

        Args:
            directory: Source directory collaborator
            service: Calendar query collaborator
            settings: Application settings (concurrency, timeout, expansion cap)
            fetcher: Pre-built fetcher, built from ``service`` if not given
        """
        self.directory = directory
        self.settings = settings
        self.fetch_concurrency = max(
            1, int(getattr(settings, "fetch_concurrency", DEFAULT_FETCH_CONCURRENCY))
        )
        self.fetch_timeout = float(getattr(settings, "fetch_timeout", DEFAULT_FETCH_TIMEOUT))
        self.fetcher = fetcher or CalendarFetcher(service, RRuleExpander.from_settings(settings))

    async def list_sources(self) -> List[Source]:
        """List every source in the directory.

        Raises:
            SourceDirectoryError: If the directory cannot be listed
        """
        try:
            sources = list(await self.directory.list_sources())
        except SourceDirectoryError:
            raise
        except Exception as e:
            raise SourceDirectoryError(
                f"Failed to list sources: {e}", operation="list_sources"
            ) from e

        logger.debug(f"Source directory returned {len(sources)} source(s)")
        return sources

    async def list_calendars(self) -> List[Calendar]:
        """List calendar sources ordered by display name.

        Raises:
            SourceDirectoryError: If the directory cannot be listed
        """
        calendars = list_calendars(await self.list_sources())
        logger.info(f"Found {len(calendars)} calendar(s)")
        return calendars

    async def fetch_all(
        self,
        now: datetime,
        window: Optional[RecurrenceWindow] = None,
        whitelist: Optional[Iterable[str]] = None,
    ) -> List[CalendarFetchResult]:
        """Fetch every (whitelisted) calendar concurrently.

        Args:
            now: Current moment
            window: Fetch window, the near window around ``now`` if not given
            whitelist: Calendar display names to restrict to; all when empty

        Returns:
            One result per calendar in listing order

        Raises:
            SourceDirectoryError: If the directory cannot be listed
        """
        window = window or near_window(now)
        calendars = select_calendars(await self.list_calendars(), whitelist)
        if not calendars:
            logger.warning("No calendars selected, nothing to fetch")
            return []

        semaphore = asyncio.Semaphore(self.fetch_concurrency)
        tasks = [
            asyncio.create_task(self._fetch_one(semaphore, calendar, window, now))
            for calendar in calendars
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        # only source errors are per-calendar; anything else is a bug and propagates
        for result in results:
            if isinstance(result, BaseException):
                raise result

        failed = [result for result in results if not result.success]  # type: ignore[union-attr]
        logger.info(
            f"Fetched {len(results) - len(failed)}/{len(results)} calendar(s) successfully"
        )
        return list(results)  # type: ignore[arg-type]

    async def _fetch_one(
        self,
        semaphore: asyncio.Semaphore,
        calendar: Calendar,
        window: RecurrenceWindow,
        now: datetime,
    ) -> CalendarFetchResult:
        async with semaphore:
            try:
                events = await asyncio.wait_for(
                    self.fetcher.fetch_events(calendar, window, now),
                    timeout=self.fetch_timeout,
                )
            except asyncio.TimeoutError:
                error = SourceTimeoutError(
                    f"Timed out fetching calendar {calendar.label!r} "
                    f"after {self.fetch_timeout:g}s",
                    source_name=calendar.label,
                    operation="query",
                )
                logger.error(error.message)
                return CalendarFetchResult(calendar=calendar, error=error)
            except SourceError as e:
                logger.error(f"Calendar {calendar.label!r} failed: {e.message}")
                return CalendarFetchResult(calendar=calendar, error=e)

        return CalendarFetchResult(calendar=calendar, events=events)


def select_calendars(
    calendars: List[Calendar], whitelist: Optional[Iterable[str]] = None
) -> List[Calendar]:
    """Keep the calendars whose display name is whitelisted; all without a whitelist."""
    names = set(whitelist or ())
    if not names:
        return calendars

    selected = [calendar for calendar in calendars if calendar.display_name in names]
    missing = names - {calendar.display_name for calendar in selected}
    if missing:
        logger.warning(f"Whitelisted calendar(s) not found: {', '.join(sorted(missing))}")
    return selected
