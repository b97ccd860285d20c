"""Configuration management for pointseries using Pydantic Settings."""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from pointseries.models import PRICE_FIELDS
from pointseries.point_store import DEFAULT_TOLERANCE
from pointseries.sliding_windows import DEFAULT_CAPACITY
from pointseries.sliding_windows import is_power_of_two


class PointStoreSettings(BaseModel):
    """Ordered point store defaults."""

    model_config = ConfigDict(extra="ignore")

    date_index: bool = Field(
        default=True,
        description="Maintain the timestamp index (enforces strictly increasing timestamps).",
    )
    timestamp_tolerance: float = Field(
        default=DEFAULT_TOLERANCE,
        gt=0,
        lt=1e-3,
        description="Tolerance in XDate days under which two timestamps are considered equal.",
    )


class ExtremaSettings(BaseModel):
    """Sliding-window extrema defaults used by chart series."""

    model_config = ConfigDict(extra="ignore")

    window_capacity: int = Field(
        default=DEFAULT_CAPACITY, gt=0, description="Window size W, must be a power of two."
    )
    value_field: str = Field(
        default="close", description="Price field of a point the window min/max is taken over."
    )

    @field_validator("window_capacity")
    @classmethod
    def _validate_capacity(cls, value: int) -> int:
        if not is_power_of_two(value):
            msg = f"window_capacity must be a power of two, got {value}"
            raise ValueError(msg)
        return value

    @field_validator("value_field")
    @classmethod
    def _validate_value_field(cls, value: str) -> str:
        """Normalize to lowercase and check against the known price fields."""
        value = value.lower()
        if value not in PRICE_FIELDS:
            msg = f"value_field must be one of {', '.join(PRICE_FIELDS)}, got {value!r}"
            raise ValueError(msg)
        return value


class LoggingSettings(BaseModel):
    """Standard logging configuration exposed via settings."""

    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="INFO", description="Root logger level.")
    fmt: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Logging format string.",
    )
    datefmt: str = Field(default="%Y-%m-%d %H:%M:%S", description="Datetime format used in logs.")
    log_dir: Path = Field(
        default=Path("./logs"),
        description="Directory for log files (relative paths resolved at runtime).",
    )
    file_name: str = Field(
        default="pointseries.log", description="Filename for the rotating file handler."
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Maximum size per log file before rotation (bytes)."
    )
    backup_count: int = Field(default=5, description="Number of rotated log files to retain.")
    file_enabled: bool = Field(default=True, description="Write logs to the rotating file.")
    console_enabled: bool = Field(
        default=True, description="Emit logs to stdout in addition to file output."
    )
    console_level: str | None = Field(
        default=None, description="Optional override for console handler level."
    )
    file_level: str | None = Field(
        default=None, description="Optional override for file handler level."
    )
    propagate: bool = Field(
        default=True, description="Allow package loggers to propagate to root handlers."
    )
    loggers: dict[str, str] = Field(
        default_factory=dict,
        description="Per-logger level overrides (name -> level).",
    )


class AppSettings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="POINTSERIES_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    store: PointStoreSettings = Field(default_factory=PointStoreSettings)
    extrema: ExtremaSettings = Field(default_factory=ExtremaSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class StdoutStreamHandler(logging.StreamHandler):
    """Stream handler that keeps stdout binding fresh for testing environments."""

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - thin wrapper
        self.stream = sys.stdout
        super().emit(record)


_LOGGING_CONFIGURED = False
_ACTIVE_LOGGING_SETTINGS: LoggingSettings | None = None
_INSTALLED_HANDLERS: list[logging.Handler] = []


def configure_logging(logging_settings: LoggingSettings | None = None) -> LoggingSettings:
    """
    Initialise stdlib logging using values from :class:`LoggingSettings`.

    The function is idempotent; subsequent calls return the already-applied settings without
    reconfiguring handlers. When called with ``None`` (default) it obtains settings from
    :func:`get_settings`, allowing environment variables to drive configuration:

    - File logging uses a rotating file handler rooted at ``logging.log_dir`` /
      ``logging.file_name`` unless ``logging.file_enabled`` is off.
    - Console logging is optional and can be toggled or level-adjusted independently.
    - Package-specific levels are applied for any loggers named in ``logging.loggers``.

    Library modules never call this; it is meant for scripts and applications.

    Parameters
    ----------
    logging_settings:
        Optional explicit :class:`LoggingSettings` instance. If omitted, cached application
        settings are used.

    Returns
    -------
    LoggingSettings
        The active logging configuration instance applied to the process.

    """
    global _LOGGING_CONFIGURED
    global _ACTIVE_LOGGING_SETTINGS

    if _LOGGING_CONFIGURED:
        assert _ACTIVE_LOGGING_SETTINGS is not None
        return _ACTIVE_LOGGING_SETTINGS

    if logging_settings is None:
        logging_settings = get_settings().logging

    formatter = logging.Formatter(logging_settings.fmt, logging_settings.datefmt)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging_settings.level.upper())

    if logging_settings.file_enabled:
        log_dir = logging_settings.log_dir
        if not log_dir.is_absolute():
            log_dir = (Path.cwd() / log_dir).resolve()
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            str(log_dir / logging_settings.file_name),
            maxBytes=logging_settings.max_bytes,
            backupCount=logging_settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel((logging_settings.file_level or logging_settings.level).upper())
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        _INSTALLED_HANDLERS.append(file_handler)

    if logging_settings.console_enabled:
        console_handler = StdoutStreamHandler()
        console_handler.setLevel((logging_settings.console_level or logging_settings.level).upper())
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        _INSTALLED_HANDLERS.append(console_handler)

    for name, level in logging_settings.loggers.items():
        package_logger = logging.getLogger(name)
        package_logger.setLevel(level.upper())
        package_logger.propagate = logging_settings.propagate

    _ACTIVE_LOGGING_SETTINGS = logging_settings
    _LOGGING_CONFIGURED = True
    return logging_settings


def reset_logging() -> None:
    """Forget the applied configuration so the next :func:`configure_logging` call reapplies."""
    global _LOGGING_CONFIGURED
    global _ACTIVE_LOGGING_SETTINGS

    root_logger = logging.getLogger()
    while _INSTALLED_HANDLERS:
        handler = _INSTALLED_HANDLERS.pop()
        root_logger.removeHandler(handler)
        handler.close()
    _ACTIVE_LOGGING_SETTINGS = None
    _LOGGING_CONFIGURED = False


@lru_cache
def get_settings(**overrides: object) -> AppSettings:
    """Return a cached instance of application settings."""
    return AppSettings(**overrides)


settings = get_settings()
