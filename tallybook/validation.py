"""
Input validation for ledger writes.

Every function here is pure: it inspects its arguments and reports whether
they may be written, without touching storage. Write operations compose
these checks and refuse to start when any of them fails.
"""

import calendar
import math
import re
from dataclasses import dataclass
from datetime import date
from numbers import Real
from typing import Any, Optional

from .config import (
    MAX_RECURRING_DAY,
    MAX_SAFE_INTEGER,
    MAX_STRING_LENGTH,
    MAX_YEAR,
    MIN_RECURRING_DAY,
    MIN_YEAR,
)
from .errors import ValidationError
from .services.amount_parser import AmountParser

FULL_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
DAY_OF_MONTH_PATTERN = re.compile(r"(?:[1-9]|0[1-9]|[12][0-9]|3[01])")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a single validation check."""

    is_valid: bool
    error: str = ""

    def raise_for(self, field: str):
        """Raise ValidationError for ``field`` if the check failed."""
        if not self.is_valid:
            raise ValidationError(field, self.error)


VALID = ValidationResult(True)


def coerce_amount(value: Any) -> Optional[float]:
    """
    Turn user input into a float amount.

    Numbers pass through unchanged, strings go through AmountParser,
    everything else (including bools) yields None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        return AmountParser.parse(value)
    return None


def validate_amount(amount: Any) -> ValidationResult:
    """Check that an amount is a finite, non-negative, safe number."""
    if isinstance(amount, bool) or not isinstance(amount, Real):
        return ValidationResult(False, "Amount must be a valid number")
    if isinstance(amount, float) and math.isnan(amount):
        return ValidationResult(False, "Amount must be a valid number")
    if amount < 0:
        return ValidationResult(False, "Amount cannot be negative")
    if amount > MAX_SAFE_INTEGER:
        return ValidationResult(False, "Amount is too large")
    return VALID


def validate_threshold(threshold: Any) -> ValidationResult:
    """A budget threshold is a valid amount that is strictly positive."""
    result = validate_amount(threshold)
    if not result.is_valid:
        return result
    if threshold <= 0:
        return ValidationResult(False, "Please enter a valid threshold amount")
    return VALID


def validate_string(
    value: Any, field_name: str, max_length: int = MAX_STRING_LENGTH
) -> ValidationResult:
    """Check that a string is non-empty after trimming and not too long."""
    if not isinstance(value, str) or not value.strip():
        return ValidationResult(False, f"{field_name} cannot be empty")
    if len(value) > max_length:
        return ValidationResult(
            False, f"{field_name} is too long (max {max_length} characters)"
        )
    return VALID


def validate_full_date(
    value: Any, today: Optional[date] = None, allow_future: bool = False
) -> ValidationResult:
    """
    Check a YYYY-MM-DD date string.

    The date must exist in the calendar and fall within the supported year
    range. Unless ``allow_future`` is set it must not be later than ``today``.
    """
    if not isinstance(value, str) or not FULL_DATE_PATTERN.fullmatch(value):
        return ValidationResult(False, "Date must be in YYYY-MM-DD format")

    year, month, day = (int(part) for part in value.split("-"))

    if year < MIN_YEAR or year > MAX_YEAR:
        return ValidationResult(
            False, f"Year must be between {MIN_YEAR} and {MAX_YEAR}"
        )
    if month < 1 or month > 12:
        return ValidationResult(False, "Month must be between 1 and 12")

    days_in_month = calendar.monthrange(year, month)[1]
    if day < 1 or day > days_in_month:
        return ValidationResult(
            False, f"Day must be between 1 and {days_in_month} for the given month"
        )

    if not allow_future and date(year, month, day) > (today or date.today()):
        return ValidationResult(False, "Date cannot be in the future")

    return VALID


def validate_day_of_month(value: Any) -> ValidationResult:
    """
    Check a recurring day-of-month string ("1".."31", "01".."09").

    Any day up to 31 is accepted regardless of month length; months that
    do not have that day simply produce no recurring entry.
    """
    if value is None or value == "":
        return VALID

    if not isinstance(value, str) or not DAY_OF_MONTH_PATTERN.fullmatch(value):
        return ValidationResult(
            False, "Recurring date must be a valid day of the month (1-31)"
        )

    day = int(value)
    if day < MIN_RECURRING_DAY or day > MAX_RECURRING_DAY:
        return ValidationResult(False, "Recurring date must be between 1 and 31")

    return VALID
