"""Configuration for the Scout intelligence engine.

Settings come from environment variables; anything unset falls back to
the defaults on the Config dataclass.

Environment Variables:
    Storage:
        INTEL_DATA_DIR: Root directory for reports and the latest summary

    Gathering:
        DEFAULT_TIMEFRAME: Window used when none is given (1h, 6h, 24h, 7d)
        CACHE_TTL_SECONDS: How long a source's alert list stays cached
        SOURCE_TIMEOUT_SECONDS: Hard per-source retrieval deadline
        MAX_WORKERS: Maximum concurrent HTTP connections

    Tracing:
        ENABLE_LOGFIRE: Send spans to Logfire (needs the logfire extra)
        LOGFIRE_TOKEN: Logfire write token

    Logging:
        LOG_DIR, LOG_LEVEL, LOG_FORMAT ('text' or 'json'),
        LOG_BACKUP_COUNT, LOG_MAX_BYTES (0 = rotate daily)

The source catalog is not read from the environment; it defaults to a
copy of registry.DEFAULT_SOURCES and can be replaced on the instance.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TypeVar

from models.report import Timeframe
from models.source import Source
from registry import DEFAULT_SOURCES

N = TypeVar("N", int, float)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _env_number(key: str, default: N, cast: Callable[[str], N]) -> N:
    """Parse a numeric variable; unset or empty means default.

    Raises:
        ValueError: If the variable is set but not a valid number
    """
    raw = os.environ.get(key)
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid {cast.__name__} value for {key}: '{raw}'") from None


def _env_flag(key: str, default: bool = False) -> bool:
    """Accepts 1/true/yes/on and 0/false/no/off; anything else is the default."""
    raw = os.environ.get(key, "").strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


@dataclass
class Config:
    """Engine settings.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Configuration error: {error}")
    """

    sources: list[Source] = field(default_factory=lambda: DEFAULT_SOURCES.copy())
    data_dir: Path = field(default_factory=lambda: Path("data/intelligence"))

    # Gathering
    default_timeframe: str = "24h"
    cache_ttl_seconds: int = 1800
    source_timeout_seconds: float = 8.0
    max_workers: int = 10

    # Logging
    log_dir: Path = field(default_factory=lambda: Path("log"))
    log_level: str = "INFO"
    log_backup_count: int = 30
    log_max_bytes: int = 0
    log_format: str = "text"

    # Tracing (pip install logfire)
    enable_logfire: bool = False
    logfire_token: str = ""

    @classmethod
    def load(cls) -> "Config":
        return cls(
            data_dir=Path(_env("INTEL_DATA_DIR", "data/intelligence")),
            default_timeframe=_env("DEFAULT_TIMEFRAME", "24h").strip(),
            cache_ttl_seconds=_env_number("CACHE_TTL_SECONDS", 1800, int),
            source_timeout_seconds=_env_number("SOURCE_TIMEOUT_SECONDS", 8.0, float),
            max_workers=_env_number("MAX_WORKERS", 10, int),
            log_dir=Path(_env("LOG_DIR", "log")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_number("LOG_BACKUP_COUNT", 30, int),
            log_max_bytes=_env_number("LOG_MAX_BYTES", 0, int),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_flag("ENABLE_LOGFIRE"),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    def validate(self) -> str | None:
        """Return the first problem found, or None if the settings are usable."""
        if not self.sources:
            return "No sources configured"
        names = [s.name for s in self.sources]
        if len(names) != len(set(names)):
            return "Source names must be unique"

        timeframes = [t.value for t in Timeframe]
        if self.default_timeframe not in timeframes:
            return f"Invalid DEFAULT_TIMEFRAME '{self.default_timeframe}' - must be one of {', '.join(timeframes)}"
        if self.log_level not in LOG_LEVELS:
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be one of {', '.join(LOG_LEVELS)}"
        if self.log_format not in LOG_FORMATS:
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"

        bounds = (
            ("CACHE_TTL_SECONDS", self.cache_ttl_seconds, False),
            ("SOURCE_TIMEOUT_SECONDS", self.source_timeout_seconds, True),
            ("MAX_WORKERS", self.max_workers, True),
            ("LOG_BACKUP_COUNT", self.log_backup_count, False),
            ("LOG_MAX_BYTES", self.log_max_bytes, False),
        )
        for key, value, positive in bounds:
            if positive and value <= 0:
                return f"{key} must be positive"
            if value < 0:
                return f"{key} must be non-negative"
        return None
