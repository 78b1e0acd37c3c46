"""
Sanitizers.

Coerce untrusted values into safe canonical values of the target type. They
never raise and always return the target type, so they can sit directly
between raw input and typed domain logic.
"""

import math
import re
from typing import Any, Callable, List, Optional

from trainguard.primitives import is_array, is_number, is_string

_TAG_RE = re.compile(r"<[^>]*>")
_ANGLE_RE = re.compile(r"[<>]")


def sanitize_string(value: Any, max_length: int = 1000) -> str:
    """
    Strip HTML-like tags, trim, then truncate.

    Inner text of tags is kept: '<b>bold</b>' becomes 'bold'. Stray angle
    brackets left after tag removal are dropped as well.
    """
    if not is_string(value):
        return ""

    cleaned = _TAG_RE.sub("", value)
    cleaned = _ANGLE_RE.sub("", cleaned)
    return cleaned.strip()[:max(max_length, 0)]


def sanitize_number(value: Any, min_value: float = 0, max_value: float = 999999) -> float:
    """Clamp into [min_value, max_value]; non-numeric input becomes min_value."""
    if not is_number(value):
        return min_value
    return max(min_value, min(max_value, value))


def round_half_up(value: float, step: float = 1.0) -> float:
    """Round to the nearest multiple of `step`, ties away from zero for positives."""
    return math.floor(value / step + 0.5) * step


def sanitize_integer(value: Any, min_value: int = 0, max_value: int = 999999) -> int:
    """Clamp like `sanitize_number`, then round to the nearest integer."""
    return int(round_half_up(sanitize_number(value, min_value, max_value)))


def sanitize_array(
    value: Any,
    item_validator: Optional[Callable[[Any], bool]] = None,
    max_items: int = 100,
) -> List[Any]:
    """
    Keep at most `max_items` elements, then drop those failing `item_validator`.

    Non-sequence input becomes an empty list.
    """
    if not is_array(value):
        return []

    items = list(value)[:max(max_items, 0)]
    if item_validator is None:
        return items
    return [item for item in items if item_validator(item)]
