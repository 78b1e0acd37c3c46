"""
Primitive validators.

Total predicates over untrusted values (form fields, AI JSON). Every function
returns a bool, never raises, and treats None or a wrong type as False.
Booleans are not numbers here, even though Python considers them ints.
"""

import math
import re
from datetime import date, datetime
from typing import Any

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_number(value: Any) -> bool:
    """
    Finite int or float. NaN, infinities and bools are rejected, as are ints
    too large to be represented as a float.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def is_positive_number(value: Any) -> bool:
    return is_number(value) and value > 0


def is_non_negative_number(value: Any) -> bool:
    return is_number(value) and value >= 0


def is_integer(value: Any) -> bool:
    """Whole-valued number; 3.0 counts, 3.5 does not."""
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer()
    return is_number(value)


def is_positive_integer(value: Any) -> bool:
    return is_integer(value) and value > 0


def is_in_range(value: Any, min_value: float, max_value: float) -> bool:
    """Inclusive on both ends."""
    return is_number(value) and min_value <= value <= max_value


def is_email(value: Any) -> bool:
    return is_string(value) and _EMAIL_RE.match(value) is not None


def is_uuid(value: Any) -> bool:
    """Canonical 8-4-4-4-12 hex form with dashes."""
    return is_string(value) and _UUID_RE.match(value) is not None


def is_date(value: Any) -> bool:
    """A date/datetime object or an ISO 8601 date string."""
    if isinstance(value, (date, datetime)):
        return True
    if not is_string(value) or not value.strip():
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_non_empty_array(value: Any) -> bool:
    return is_array(value) and len(value) > 0
