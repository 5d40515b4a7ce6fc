"""Logging configuration for edsnext.

Console output goes to stderr so that stdout carries only the report. Besides
the standard levels there is ``VERBOSE`` (15), used for per-record and
per-event detail that is too noisy for INFO but useful without full DEBUG.
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Optional, Union

if TYPE_CHECKING:
    from ..config.settings import EdsNextSettings

VERBOSE = 15
logging.addLevelName(VERBOSE, "VERBOSE")

THIRD_PARTY_LOGGERS = ("icalendar", "asyncio", "gi")

CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT_WITH_FUNCTIONS = (
    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
)


def get_log_level(level_name: str) -> int:
    """Get numeric log level from string name, including ``VERBOSE``.

    Raises:
        AttributeError: If level name is not recognized
    """
    level_name = level_name.upper()
    if level_name == "VERBOSE":
        return VERBOSE
    level: int = getattr(logging, level_name)
    return level


def detect_color_mode(stream: Optional[IO[str]] = None) -> str:
    """Work out which ANSI colors ``stream`` can show.

    Returns:
        ``"truecolor"``, ``"basic"`` or ``"none"``
    """
    stream = stream if stream is not None else sys.stderr
    isatty = getattr(stream, "isatty", None)
    if isatty is None or not isatty():
        return "none"

    term = os.environ.get("TERM", "").lower()
    if term == "dumb" or "NO_COLOR" in os.environ:
        return "none"
    if os.environ.get("COLORTERM", "").lower() in ("truecolor", "24bit") or "256color" in term:
        return "truecolor"
    return "basic" if "color" in term else "none"


class AutoColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when the terminal supports it."""

    # level name -> (bright code, basic code)
    LEVEL_COLORS = {
        "CRITICAL": ("91;1", "31;1"),
        "ERROR": ("91", "31"),
        "WARNING": ("93", "33"),
        "INFO": ("94", "34"),
        "VERBOSE": ("92", "32"),
        "DEBUG": ("95", "35"),
    }

    def __init__(
        self,
        *args: Any,
        enable_colors: bool = True,
        stream: Optional[IO[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.color_mode = detect_color_mode(stream) if enable_colors else "none"

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        codes = self.LEVEL_COLORS.get(record.levelname)
        if self.color_mode == "none" or codes is None:
            return formatted

        code = codes[0] if self.color_mode == "truecolor" else codes[1]
        colored = f"\033[{code}m{record.levelname}\033[0m"
        return formatted.replace(record.levelname, colored, 1)


class TimestampedFileHandler(logging.FileHandler):
    """File handler writing one ``<prefix>_<timestamp>.log`` per run.

    Only the ``max_files`` most recent logs with the same prefix are kept.
    """

    def __init__(
        self, log_dir: Union[str, Path], prefix: str = "edsnext", max_files: int = 5
    ) -> None:
        self.log_dir = Path(log_dir)
        self.prefix = prefix
        self.max_files = max_files

        self.log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        super().__init__(str(self.log_dir / f"{prefix}_{stamp}.log"), encoding="utf-8")

        self.cleanup_old_files()

    def cleanup_old_files(self) -> None:
        newest_first = sorted(
            self.log_dir.glob(f"{self.prefix}_*.log"),
            key=lambda path: path.stat().st_mtime,
            reverse=True,
        )
        for stale in newest_first[self.max_files :]:
            try:
                stale.unlink()
            except OSError as e:
                logging.getLogger(__name__).debug(f"Could not remove old log file {stale}: {e}")


def setup_logging(settings: "EdsNextSettings") -> logging.Logger:
    """Configure the ``edsnext`` logger from settings.

    Handlers from an earlier call are replaced, so this is safe to call again.

    Args:
        settings: Application settings

    Returns:
        The configured package logger
    """
    log_settings = settings.logging
    logger = logging.getLogger("edsnext")
    # handlers do the filtering
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_settings.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(get_log_level(log_settings.console_level))
        console_handler.setFormatter(
            AutoColoredFormatter(
                CONSOLE_FORMAT,
                datefmt="%H:%M:%S",
                enable_colors=log_settings.console_colors,
                stream=sys.stderr,
            )
        )
        logger.addHandler(console_handler)

    if log_settings.file_enabled:
        file_handler = TimestampedFileHandler(
            settings.log_dir,
            prefix=log_settings.file_prefix,
            max_files=log_settings.max_log_files,
        )
        file_handler.setLevel(get_log_level(log_settings.file_level))
        file_format = (
            FILE_FORMAT_WITH_FUNCTIONS if log_settings.include_function_names else FILE_FORMAT
        )
        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        logger.info(f"Logging to file: {file_handler.baseFilename}")

    third_party_level = get_log_level(log_settings.third_party_level)
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return logger


def apply_command_line_overrides(settings: "EdsNextSettings", args: Any) -> "EdsNextSettings":
    """Apply ``--verbose``, ``--debug`` and ``--no-log-colors`` to settings in place."""
    if getattr(args, "debug", False):
        settings.logging.console_level = "DEBUG"
    elif getattr(args, "verbose", False):
        settings.logging.console_level = "VERBOSE"

    if getattr(args, "no_log_colors", False):
        settings.logging.console_colors = False

    return settings
