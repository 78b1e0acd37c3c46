"""
Composite validators for structured records.

Each record is validated field by field without stopping at the first
failure, so callers receive every error in a single pass.
"""

from collections.abc import Mapping
from typing import Any, Dict, List

from pydantic import BaseModel

from trainguard.fields import validate_reps, validate_rpe, validate_weight
from trainguard.limits import VALID_FITNESS_LEVELS, VALID_GOALS
from trainguard.primitives import is_in_range, is_number, is_positive_integer, is_string
from trainguard.sanitizers import sanitize_string
from trainguard.schemas import ValidationError, ValidationResult

PROFILE_AGE_RANGE = (13, 100)
PROFILE_WEIGHT_KG_RANGE = (30, 300)
PROFILE_HEIGHT_CM_RANGE = (100, 250)
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500


def _as_dict(record: Any) -> Dict[str, Any]:
    """Read a raw record given as a mapping or a pydantic model."""
    if isinstance(record, BaseModel):
        return record.model_dump()
    if isinstance(record, Mapping):
        return dict(record)
    return {}


# ============================================================================
# Set Log
# ============================================================================


def validate_set_log(set_log: Any) -> ValidationResult:
    """
    Validate one performed set: reps, weight and optional RPE.

    `sanitized` always holds the field-wise sanitized record, so a caller can
    inspect what would have been accepted even when `valid` is False.
    """
    data = _as_dict(set_log)
    errors: List[ValidationError] = []

    reps_result = validate_reps(data.get("reps"))
    errors.extend(reps_result.errors)

    weight_result = validate_weight(data.get("weight"))
    errors.extend(weight_result.errors)

    rpe = data.get("rpe")
    rpe_result = validate_rpe(rpe)
    if rpe is not None:
        errors.extend(rpe_result.errors)

    notes = data.get("notes")
    sanitized = {
        "reps": reps_result.sanitized,
        "weight": weight_result.sanitized,
        "rpe": rpe_result.sanitized,
        "notes": sanitize_string(notes, MAX_NOTES_LENGTH) if notes else None,
    }

    return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)


# ============================================================================
# User Profile
# ============================================================================


def validate_user_profile(profile: Any) -> ValidationResult:
    """
    Validate a partial user profile.

    Only fields present in the input (and not None) are checked; absent
    fields never produce errors and are left out of `sanitized`.
    """
    data = {key: value for key, value in _as_dict(profile).items() if value is not None}
    errors: List[ValidationError] = []
    sanitized: Dict[str, Any] = {}

    if "name" in data:
        name = data["name"]
        if not is_string(name) or len(sanitize_string(name, MAX_NAME_LENGTH)) < MIN_NAME_LENGTH:
            errors.append(ValidationError(
                code="INVALID_NAME",
                message=f"Name must have at least {MIN_NAME_LENGTH} characters",
                field="name",
                value=name,
            ))
        sanitized["name"] = sanitize_string(name, MAX_NAME_LENGTH)

    if "age" in data:
        age = data["age"]
        low, high = PROFILE_AGE_RANGE
        if not is_positive_integer(age) or not is_in_range(age, low, high):
            errors.append(ValidationError(
                code="INVALID_AGE",
                message=f"Age must be between {low} and {high} years",
                field="age",
                value=age,
            ))
        else:
            sanitized["age"] = int(age)

    if "weight_kg" in data:
        weight = data["weight_kg"]
        low, high = PROFILE_WEIGHT_KG_RANGE
        if not is_number(weight) or not is_in_range(weight, low, high):
            errors.append(ValidationError(
                code="INVALID_WEIGHT",
                message=f"Body weight must be between {low} and {high} kg",
                field="weight_kg",
                value=weight,
            ))
        else:
            sanitized["weight_kg"] = round(weight, 1)

    if "height_cm" in data:
        height = data["height_cm"]
        low, high = PROFILE_HEIGHT_CM_RANGE
        if not is_positive_integer(height) or not is_in_range(height, low, high):
            errors.append(ValidationError(
                code="INVALID_HEIGHT",
                message=f"Height must be between {low} and {high} cm",
                field="height_cm",
                value=height,
            ))
        else:
            sanitized["height_cm"] = int(height)

    if "fitness_level" in data:
        level = data["fitness_level"]
        if not is_string(level) or level not in VALID_FITNESS_LEVELS:
            errors.append(ValidationError(
                code="INVALID_FITNESS_LEVEL",
                message=f"Fitness level must be one of: {', '.join(VALID_FITNESS_LEVELS)}",
                field="fitness_level",
                value=level,
            ))
        else:
            sanitized["fitness_level"] = level

    if "goal" in data:
        goal = data["goal"]
        if not is_string(goal) or goal not in VALID_GOALS:
            errors.append(ValidationError(
                code="INVALID_GOAL",
                message=f"Goal must be one of: {', '.join(VALID_GOALS)}",
                field="goal",
                value=goal,
            ))
        else:
            sanitized["goal"] = goal

    return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)
