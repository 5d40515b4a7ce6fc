"""Configuration settings for edsnext."""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..timeline.models import StatusPolicy

ENV_PREFIX = "EDSNEXT_"

# RRULE instances generated per master, per window
MAX_RRULE_OCCURRENCES = 32


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="WARNING",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(
        default="DEBUG",
        description="File log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    file_directory: Optional[str] = Field(
        default=None, description="Custom log directory (defaults to data_dir/logs)"
    )
    file_prefix: str = Field(default="edsnext", description="Log file prefix")
    max_log_files: int = Field(default=5, description="Maximum number of log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class EdsNextSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)

    # Calendar selection
    calendars: List[str] = Field(
        default_factory=list,
        description="Calendar display names to include (empty means all)",
    )

    # Classification
    limit_to_today: bool = Field(
        default=False, description="Report 'no event today' instead of a next event tomorrow"
    )
    status_policy: StatusPolicy = Field(
        default=StatusPolicy.PERMISSIVE,
        description="permissive drops cancelled events; restrictive keeps active statuses",
    )

    # Recurrence
    rrule_max_occurrences: int = Field(
        default=MAX_RRULE_OCCURRENCES,
        description="Maximum expanded instances per recurring event (1-32)",
    )

    # Fetching
    fetch_concurrency: int = Field(default=4, description="Calendars fetched in parallel")
    fetch_timeout: int = Field(default=30, description="Per-calendar fetch timeout in seconds")

    # Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "edsnext")
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local" / "share" / "edsnext")

    # Logging
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    def __init__(self, **kwargs: Any) -> None:
        # Track which environment variables are set before calling parent
        env_vars_set = {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        # Track which arguments were explicitly provided
        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set

        self._load_yaml_config()

    @field_validator("rrule_max_occurrences")
    @classmethod
    def validate_rrule_max_occurrences(cls, value: int) -> int:
        if not 1 <= value <= MAX_RRULE_OCCURRENCES:
            raise ValueError(
                f"rrule_max_occurrences must be between 1 and {MAX_RRULE_OCCURRENCES}"
            )
        return value

    @field_validator("fetch_concurrency", "fetch_timeout")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    def _find_config_file(self) -> Optional[Path]:
        """Find config file, checking project directory first, then user home."""
        project_root = Path(__file__).parent.parent.parent
        project_config = project_root / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _is_overridden(self, setting: str) -> bool:
        return setting in self._explicit_args or setting in self._env_vars_set

    def _load_basic_settings(self, config_data: dict) -> None:
        """Load top-level settings from YAML data."""
        basic_settings = [
            "calendars",
            "limit_to_today",
            "status_policy",
            "rrule_max_occurrences",
            "fetch_concurrency",
            "fetch_timeout",
        ]

        for setting in basic_settings:
            if setting in config_data and not self._is_overridden(setting):
                setattr(self, setting, config_data[setting])

    def _load_logging_config(self, config_data: dict) -> None:
        """Load logging configuration from YAML data."""
        logging_config = config_data.get("logging")
        if not isinstance(logging_config, dict) or self._is_overridden("logging"):
            return

        for setting in LoggingSettings.model_fields:
            if setting in logging_config and not self._is_overridden(f"logging__{setting}"):
                setattr(self.logging, setting, logging_config[setting])

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            self._load_basic_settings(config_data)
            self._load_logging_config(config_data)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logging.warning(f"Could not load YAML config from {config_file}: {e}")

    @property
    def config_file(self) -> Path:
        """Path to YAML configuration file."""
        return self.config_dir / "config.yaml"

    @property
    def log_dir(self) -> Path:
        """Directory for log files."""
        if self.logging.file_directory:
            return Path(self.logging.file_directory)
        return self.data_dir / "logs"


# Global settings management
_settings_instance: Optional[EdsNextSettings] = None


def get_settings() -> EdsNextSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = EdsNextSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
