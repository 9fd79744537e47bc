"""Ingress validation for observations.

Invalid observations never reach the updater; errors are surfaced to
callers as :class:`InvalidObservation`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any

from .errors import InvalidObservation

__all__ = [
    "MAX_SUBJECT_LENGTH",
    "Observation",
    "ValidationResult",
    "validate_amount",
    "validate_observation",
    "validate_subject",
]

MAX_SUBJECT_LENGTH = 128


@dataclass(frozen=True)
class Observation:
    """A validated (subject, amount) pair."""

    subject: str
    amount: int | float


class ValidationResult:
    """Result of observation validation."""

    def __init__(self, valid: bool, errors: list[str] | None = None) -> None:
        self.valid = valid
        self.errors = errors or []

    def __bool__(self) -> bool:
        return self.valid

    def __str__(self) -> str:
        if self.valid:
            return "Valid"
        return f"Invalid: {'; '.join(self.errors)}"

    def add_error(self, error: str) -> None:
        self.errors.append(error)
        self.valid = False


def validate_subject(subject: Any, result: ValidationResult) -> None:
    if not isinstance(subject, str):
        result.add_error(f"subject must be a string, got {type(subject).__name__}")
        return

    stripped = subject.strip()
    if not stripped:
        result.add_error("subject must not be empty")
    elif len(stripped) > MAX_SUBJECT_LENGTH:
        result.add_error(f"subject longer than {MAX_SUBJECT_LENGTH} characters")


def validate_amount(amount: Any, result: ValidationResult) -> None:
    # bool is a Real subclass but never a wager size
    if isinstance(amount, bool) or not isinstance(amount, Real):
        result.add_error(f"amount must be a number, got {type(amount).__name__}")
        return

    # Integers are always finite, even past float range
    if isinstance(amount, int):
        return

    try:
        value = float(amount)
    except OverflowError:
        result.add_error("amount out of float range")
        return

    if not math.isfinite(value):
        result.add_error(f"amount must be finite, got {amount}")


def validate_observation(subject: Any, amount: Any) -> Observation:
    """Validate an observation before it is applied.

    Parameters
    ----------
    subject
        Subject identifier (non-empty string, surrounding whitespace is
        stripped)
    amount
        Finite int or float

    Returns
    -------
    Observation
        Normalized observation

    Raises
    ------
    InvalidObservation
        If any check fails; ``errors`` lists every failure
    """
    result = ValidationResult(valid=True)
    validate_subject(subject, result)
    validate_amount(amount, result)

    if not result:
        raise InvalidObservation(str(result), errors=result.errors)

    if not isinstance(amount, int):
        amount = float(amount)

    return Observation(subject=subject.strip(), amount=amount)
