"""Human-readable formatting helpers."""

from datetime import datetime, timedelta


def format_duration(delta: timedelta) -> str:
    """Format a duration, floored to the minute, as a short string.

    Args:
        delta: Duration to format; negative durations count as zero

    Returns:
        Formatted duration such as ``0m``, ``45m``, ``1h 5m`` or ``2d 3h``
    """
    minutes = max(int(delta.total_seconds()), 0) // 60
    if minutes < 60:
        return f"{minutes}m"

    days, remainder = divmod(minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def format_time(dt: datetime) -> str:
    """Format a time of day in short 12-hour form, e.g. ``9:05am``."""
    hour = dt.hour % 12 or 12
    suffix = "am" if dt.hour < 12 else "pm"
    return f"{hour}:{dt.minute:02d}{suffix}"
