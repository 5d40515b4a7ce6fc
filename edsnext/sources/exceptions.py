"""Source-specific exceptions."""

from typing import Optional


class SourceError(Exception):
    """Base exception for source-related errors."""

    def __init__(self, message: str, source_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.source_name = source_name


class SourceConnectionError(SourceError):
    """Exception raised when an external calendar call fails.

    ``operation`` names the call that failed: ``list_sources``,
    ``open_calendar`` or ``query``.
    """

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, source_name)
        self.operation = operation


class SourceDirectoryError(SourceConnectionError):
    """Exception raised when the source directory as a whole is unavailable."""


class SourceTimeoutError(SourceConnectionError):
    """Exception raised when a calendar operation times out."""
