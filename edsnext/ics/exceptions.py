"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str, property_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.property_name = property_name


class ICSParseError(ICSError):
    """Exception raised when a raw calendar object cannot be parsed."""


class ICSPropertyError(ICSError):
    """Exception raised when a property value is malformed."""
