"""
Validation API Routes

Endpoints sanitizing and validating raw set logs and profile edits.
"""

from typing import Any, Dict

from fastapi import APIRouter, Body

from trainguard.composite import validate_set_log, validate_user_profile
from trainguard.schemas import ValidationResult

router = APIRouter()


@router.post("/validate/set-log", response_model=ValidationResult)
async def validate_set(payload: Dict[str, Any] = Body(...)) -> ValidationResult:
    """
    Validate one logged set: reps, weight, optional rpe and notes.

    Returns every error found plus the sanitized record.
    """
    return validate_set_log(payload)


@router.post("/validate/profile", response_model=ValidationResult)
async def validate_profile(payload: Dict[str, Any] = Body(...)) -> ValidationResult:
    """Validate the profile fields present in the payload."""
    return validate_user_profile(payload)
