"""Centralized configuration for bettotals.

Loads configuration from a .env file and the environment and provides
typed access to settings. The civil timezone is fixed here at startup and
is never overridden per request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ..core.time import DEFAULT_CIVIL_TIMEZONE, validate_timezone_name
from ..rollups.time_windows import WEEK_START_SUNDAY

__all__ = [
    "ConfigError",
    "Settings",
    "generate_example_env",
    "get_settings",
    "load_env_file",
    "load_settings",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Centralized settings.

    Attributes
    ----------
    db_path : Path
        SQLite database holding ``bet_totals`` (required)
    timezone : str
        Civil timezone for every period label
    week_start_on : int
        Weekday weeks start on (0=Monday, 6=Sunday)
    storage_timeout : float
        Seconds to wait on a busy database
    lock_timeout : float
        Seconds to wait for a subject lock
    lock_dir : Path | None
        Directory for cross-process lock files (in-process locks if unset)
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSON logs (console only if unset)
    """

    db_path: Path

    timezone: str = DEFAULT_CIVIL_TIMEZONE
    week_start_on: int = WEEK_START_SUNDAY

    storage_timeout: float = 5.0
    lock_timeout: float = 10.0
    lock_dir: Path | None = None

    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.db_path:
            raise ConfigError(
                "db_path is required. Set BETTOTALS_DB_PATH in .env or environment "
                "(e.g., BETTOTALS_DB_PATH=data/bet_totals.db)"
            )

        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)
        if self.lock_dir and isinstance(self.lock_dir, str):
            self.lock_dir = Path(self.lock_dir)
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        try:
            validate_timezone_name(self.timezone)
        except ValueError as exc:
            raise ConfigError(
                f"BETTOTALS_TIMEZONE is not a known IANA timezone: {self.timezone!r} "
                "(e.g., Asia/Ho_Chi_Minh, Europe/Brussels)"
            ) from exc

        if not 0 <= self.week_start_on <= 6:
            raise ConfigError(
                f"BETTOTALS_WEEK_START must be 0 (Monday) to 6 (Sunday), got {self.week_start_on}"
            )

        if self.storage_timeout <= 0 or self.lock_timeout <= 0:
            raise ConfigError("BETTOTALS_STORAGE_TIMEOUT and BETTOTALS_LOCK_TIMEOUT must be positive")

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"BETTOTALS_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, otherwise from os.environ.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)

        Raises
        ------
        ConfigError
            If required settings are missing or invalid
        """
        if env_file is None:
            env_file = Path(".env")

        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        db_path = os.environ.get("BETTOTALS_DB_PATH")
        if not db_path:
            raise ConfigError(
                "BETTOTALS_DB_PATH is required.\n\n"
                "Quick fix:\n"
                "  1. Run `bettotals init-env` to write an example .env\n"
                "  2. Set BETTOTALS_DB_PATH=data/bet_totals.db in .env\n"
                "  3. Run your command again\n\n"
                "Or set it in environment: export BETTOTALS_DB_PATH=data/bet_totals.db"
            )

        try:
            return cls(
                db_path=Path(db_path),
                timezone=os.environ.get("BETTOTALS_TIMEZONE", DEFAULT_CIVIL_TIMEZONE),
                week_start_on=int(os.environ.get("BETTOTALS_WEEK_START", str(WEEK_START_SUNDAY))),
                storage_timeout=float(os.environ.get("BETTOTALS_STORAGE_TIMEOUT", "5.0")),
                lock_timeout=float(os.environ.get("BETTOTALS_LOCK_TIMEOUT", "10.0")),
                lock_dir=Path(os.environ["BETTOTALS_LOCK_DIR"]) if os.environ.get("BETTOTALS_LOCK_DIR") else None,
                log_level=os.environ.get("BETTOTALS_LOG_LEVEL", "INFO"),
                log_dir=Path(os.environ["BETTOTALS_LOG_DIR"]) if os.environ.get("BETTOTALS_LOG_DIR") else None,
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file.

    Existing environment variables are overwritten.
    """
    with open(env_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ[key] = value


_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings from environment and remember them.

    Raises
    ------
    ConfigError
        If required settings missing (clear error message)
    """
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings.

    Raises
    ------
    ConfigError
        If settings not loaded
    """
    if _settings is None:
        raise ConfigError("Settings not loaded. Call load_settings() first or set BETTOTALS_DB_PATH.")
    return _settings


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings.

    Parameters
    ----------
    output_path
        Optional path to write .env file

    Returns
    -------
    str
        Example .env contents
    """
    example = f"""# bettotals configuration
# Copy this to .env and adjust values

# ====================
# Storage
# ====================

# SQLite database with one row per subject (required)
BETTOTALS_DB_PATH=data/bet_totals.db

# Seconds to wait on a busy database before failing (optional, default: 5.0)
BETTOTALS_STORAGE_TIMEOUT=5.0

# ====================
# Calendar
# ====================

# Civil timezone for day/week/month labels (optional, default: {DEFAULT_CIVIL_TIMEZONE})
BETTOTALS_TIMEZONE={DEFAULT_CIVIL_TIMEZONE}

# Weekday weeks start on: 0=Monday ... 6=Sunday (optional, default: 6)
BETTOTALS_WEEK_START={WEEK_START_SUNDAY}

# ====================
# Concurrency
# ====================

# Seconds to wait for a subject lock (optional, default: 10.0)
BETTOTALS_LOCK_TIMEOUT=10.0

# Lock file directory; set it when several processes share the database
# BETTOTALS_LOCK_DIR=data/locks

# ====================
# Logging
# ====================

# Log level (optional, default: INFO)
# Options: DEBUG, INFO, WARNING, ERROR, CRITICAL
BETTOTALS_LOG_LEVEL=INFO

# JSON log directory (optional, logs to console if not set)
# BETTOTALS_LOG_DIR=logs
"""

    if output_path:
        output_path.write_text(example, encoding="utf-8")

    return example
