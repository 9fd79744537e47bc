"""Core building blocks: time discipline, errors, ingress validation."""

from .errors import BetTotalsError, InvalidObservation, NotFound, StorageUnavailable
from .time import (
    DEFAULT_CIVIL_TIMEZONE,
    TimeConfig,
    ensure_timezone,
    format_utc_iso8601,
    get_civil_timezone,
    get_current_utc,
    localize_utc_to_tz,
    parse_utc_iso8601,
    set_civil_timezone,
    validate_timezone_name,
)
from .validation import Observation, validate_observation

__all__ = [
    # Errors
    "BetTotalsError",
    "InvalidObservation",
    "NotFound",
    "StorageUnavailable",
    # Time
    "DEFAULT_CIVIL_TIMEZONE",
    "TimeConfig",
    "ensure_timezone",
    "format_utc_iso8601",
    "get_civil_timezone",
    "get_current_utc",
    "localize_utc_to_tz",
    "parse_utc_iso8601",
    "set_civil_timezone",
    "validate_timezone_name",
    # Validation
    "Observation",
    "validate_observation",
]
