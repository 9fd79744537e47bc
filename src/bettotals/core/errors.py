"""Error taxonomy for the aggregation engine."""

from __future__ import annotations

__all__ = [
    "BetTotalsError",
    "InvalidObservation",
    "NotFound",
    "StorageUnavailable",
]


class BetTotalsError(Exception):
    """Base exception for bettotals operations."""

    pass


class InvalidObservation(BetTotalsError):
    """Raised when an observation is malformed.

    Rejected before it reaches the updater; never retried.
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class StorageUnavailable(BetTotalsError):
    """Raised when the record store cannot be read or written in time.

    Callers decide the retry policy.
    """

    pass


class NotFound(BetTotalsError):
    """Raised when a point lookup targets a subject with no record."""

    def __init__(self, subject: str) -> None:
        super().__init__(f"No totals recorded for subject: {subject}")
        self.subject = subject
