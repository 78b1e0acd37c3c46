"""
Field validators for the workout domain.

Each validator checks one raw value against a fixed range from
`WORKOUT_LIMITS` and returns a `ValidationResult` whose `sanitized` value is
the nearest valid canonical form (clamped and rounded), even when the input
itself is rejected.
"""

from typing import Any, List, Optional

from trainguard.limits import WORKOUT_LIMITS, FieldRange
from trainguard.primitives import is_in_range, is_integer, is_number
from trainguard.sanitizers import round_half_up, sanitize_number
from trainguard.schemas import ValidationError, ValidationResult


def _check_range(
    value: Any,
    field: str,
    label: str,
    limits: FieldRange,
    invalid_code: str,
    range_code: str,
    unit: str = "",
    integer: bool = False,
) -> List[ValidationError]:
    """Type check first, then range check. At most one error per field."""
    if not is_number(value) or (integer and not is_integer(value)):
        kind = "a whole number" if integer else "a number"
        return [
            ValidationError(
                code=invalid_code,
                message=f"{label} must be {kind}",
                field=field,
                value=value,
            )
        ]

    if not is_in_range(value, limits.min, limits.max):
        return [
            ValidationError(
                code=range_code,
                message=f"{label} must be between {limits.min:g} and {limits.max:g}{unit}",
                field=field,
                value=value,
            )
        ]

    return []


def _result(errors: List[ValidationError], sanitized: Any) -> ValidationResult:
    return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)


def validate_reps(value: Any) -> ValidationResult:
    limits = WORKOUT_LIMITS.reps
    errors = _check_range(
        value, "reps", "Reps", limits, "INVALID_REPS", "REPS_OUT_OF_RANGE", integer=True
    )
    sanitized = int(round_half_up(sanitize_number(value, limits.min, limits.max)))
    return _result(errors, sanitized)


def validate_weight(value: Any) -> ValidationResult:
    """Weight in kg. Sanitized output is always a multiple of 0.25 kg."""
    limits = WORKOUT_LIMITS.weight
    errors = _check_range(
        value, "weight", "Weight", limits, "INVALID_WEIGHT", "WEIGHT_OUT_OF_RANGE", unit="kg"
    )
    sanitized = round_half_up(sanitize_number(value, limits.min, limits.max), 0.25)
    return _result(errors, sanitized)


def validate_sets(value: Any) -> ValidationResult:
    limits = WORKOUT_LIMITS.sets
    errors = _check_range(
        value, "sets", "Sets", limits, "INVALID_SETS", "SETS_OUT_OF_RANGE", integer=True
    )
    sanitized = int(round_half_up(sanitize_number(value, limits.min, limits.max)))
    return _result(errors, sanitized)


def validate_rpe(value: Any) -> ValidationResult:
    """
    RPE is optional: None is valid and sanitizes to None.

    Otherwise the sanitized value is a multiple of 0.5 within the RPE scale,
    or None when the input is not a number at all.
    """
    if value is None:
        return _result([], None)

    limits = WORKOUT_LIMITS.rpe
    errors = _check_range(value, "rpe", "RPE", limits, "INVALID_RPE", "RPE_OUT_OF_RANGE")
    sanitized: Optional[float] = None
    if is_number(value):
        sanitized = round_half_up(sanitize_number(value, limits.min, limits.max), 0.5)
    return _result(errors, sanitized)


def validate_rest_seconds(value: Any) -> ValidationResult:
    limits = WORKOUT_LIMITS.rest
    errors = _check_range(
        value, "rest_seconds", "Rest", limits, "INVALID_REST", "REST_OUT_OF_RANGE", unit=" seconds"
    )
    sanitized = int(round_half_up(sanitize_number(value, limits.min, limits.max)))
    return _result(errors, sanitized)
