"""
Timezone package for edsnext.

Provides zone identifier normalization, zone table lookup and absolute time
arithmetic with a small public API.

Example usage:
    >>> from edsnext.timezone import resolve_timezone, shift
    >>> from datetime import datetime, timedelta
    >>>
    >>> berlin = resolve_timezone("/freeassociation.sourceforge.net/Europe/Berlin")
    >>> start = datetime(2026, 10, 25, 1, 30, tzinfo=berlin)
    >>> end = shift(start, timedelta(hours=2))
"""

from .service import (
    UTC,
    TimezoneError,
    TimezoneResolutionError,
    absolute_delta,
    get_local_timezone,
    normalize_timezone,
    now_local,
    resolve_timezone,
    shift,
    to_utc,
)

__all__ = [
    "UTC",
    "TimezoneError",
    "TimezoneResolutionError",
    "absolute_delta",
    "get_local_timezone",
    "normalize_timezone",
    "now_local",
    "resolve_timezone",
    "shift",
    "to_utc",
]
