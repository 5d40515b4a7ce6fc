"""Command-line overrides for edsnext settings."""

import logging
from typing import Any

from ..config.settings import EdsNextSettings
from ..utils.logging import apply_command_line_overrides

logger = logging.getLogger(__name__)


def apply_cli_overrides(settings: EdsNextSettings, args: Any) -> EdsNextSettings:
    """Apply command-line overrides to settings.

    Priority: Command-line > Environment > YAML > Defaults.

    Args:
        settings: Current settings object
        args: Parsed command line arguments

    Returns:
        Updated settings object
    """
    calendars = getattr(args, "calendars", None)
    if calendars:
        settings.calendars = list(calendars)
        logger.debug(f"Calendar whitelist from command line: {calendars}")

    if getattr(args, "today", None):
        settings.limit_to_today = True

    return apply_command_line_overrides(settings, args)


__all__ = ["apply_cli_overrides"]
