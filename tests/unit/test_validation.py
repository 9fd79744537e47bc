"""Tests for observation validation at ingress."""

import math
from fractions import Fraction

import pytest

from bettotals.core.errors import InvalidObservation
from bettotals.core.validation import MAX_SUBJECT_LENGTH, Observation, validate_observation


def test_valid_observation():
    """Test a well-formed observation passes."""
    assert validate_observation("alice", 100) == Observation(subject="alice", amount=100)


def test_subject_is_stripped():
    """Test surrounding whitespace is removed from the subject."""
    assert validate_observation("  alice ", 5).subject == "alice"


def test_int_stays_int_and_float_stays_float():
    """Test amount types are preserved."""
    assert isinstance(validate_observation("alice", 3).amount, int)
    assert validate_observation("alice", 2.5).amount == 2.5


def test_negative_and_zero_amounts_are_accepted():
    """Test sign is not restricted."""
    assert validate_observation("alice", 0).amount == 0
    assert validate_observation("alice", -10).amount == -10


def test_integer_beyond_float_range_is_accepted():
    """Test integers too large for a float are still finite amounts."""
    assert validate_observation("alice", 10**400).amount == 10**400


def test_rational_beyond_float_range_is_rejected():
    with pytest.raises(InvalidObservation, match="out of float range"):
        validate_observation("alice", Fraction(10**400, 3))


@pytest.mark.parametrize("subject", ["", "   ", None, 42, "x" * (MAX_SUBJECT_LENGTH + 1)])
def test_invalid_subject(subject):
    """Test malformed subjects are rejected."""
    with pytest.raises(InvalidObservation) as exc_info:
        validate_observation(subject, 10)

    assert any("subject" in error for error in exc_info.value.errors)


@pytest.mark.parametrize("amount", ["100", None, True, math.nan, math.inf, -math.inf])
def test_invalid_amount(amount):
    """Test non-numeric and non-finite amounts are rejected."""
    with pytest.raises(InvalidObservation) as exc_info:
        validate_observation("alice", amount)

    assert any("amount" in error for error in exc_info.value.errors)


def test_all_errors_reported():
    """Test every failed check is listed."""
    with pytest.raises(InvalidObservation) as exc_info:
        validate_observation("", "lots")

    assert len(exc_info.value.errors) == 2
    assert str(exc_info.value).startswith("Invalid:")
