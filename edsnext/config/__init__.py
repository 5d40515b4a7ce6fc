"""Configuration management for edsnext."""

from .settings import EdsNextSettings, LoggingSettings, get_settings, reset_settings

__all__ = ["EdsNextSettings", "LoggingSettings", "get_settings", "reset_settings"]
