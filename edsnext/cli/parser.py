"""Command-line argument parsing for edsnext."""

import argparse
import logging
from datetime import date, datetime

logger = logging.getLogger(__name__)

TODAY = "today"


def create_parser() -> argparse.ArgumentParser:
    """Create the command line argument parser.

    Returns:
        argparse.ArgumentParser: Configured parser

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["--calendar", "Work", "--today"])
        >>> args.calendars
        ['Work']
    """
    parser = argparse.ArgumentParser(
        prog="edsnext",
        description="edsnext - show the current or next event from Evolution Data Server calendars",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                           # Print the current or next event
  %(prog)s --list                    # List available calendars
  %(prog)s --day                     # Print today's events
  %(prog)s --day 2026-10-21          # Print the events of another day
  %(prog)s --calendar Work --today   # Only the Work calendar, only today
        """,
    )

    parser.add_argument(
        "--version", action="version", version="%(prog)s 0.1.0", help="Show version information"
    )

    output_group = parser.add_argument_group("output", "What to print")
    mode = output_group.add_mutually_exclusive_group()

    mode.add_argument(
        "--list", "-l", action="store_true", help="List calendars by display name and uid"
    )

    mode.add_argument(
        "--day",
        "-d",
        nargs="?",
        const=TODAY,
        default=None,
        metavar="YYYY-MM-DD",
        help="Print the events of a day as a table (default: today)",
    )

    selection_group = parser.add_argument_group("selection", "Which events take part")

    selection_group.add_argument(
        "--calendar",
        "-c",
        action="append",
        dest="calendars",
        default=None,
        metavar="NAME",
        help="Only use the calendar with this display name (repeatable)",
    )

    selection_group.add_argument(
        "--today",
        "-t",
        action="store_true",
        default=None,
        help="Report no event rather than a next event on a later day",
    )

    logging_group = parser.add_argument_group("logging", "Logging options")

    logging_group.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    logging_group.add_argument("--debug", action="store_true", help="Enable debug logging")

    logging_group.add_argument(
        "--no-log-colors", action="store_true", help="Disable colored log output"
    )

    return parser


def parse_date(date_str: str) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Raises:
        argparse.ArgumentTypeError: If the date format is invalid
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD") from err


__all__ = ["TODAY", "create_parser", "parse_date"]
