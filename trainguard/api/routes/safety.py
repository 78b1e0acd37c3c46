"""
Safety API Routes

Endpoints running the guardrail engine over workout candidates,
load progressions and weekly volume changes.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from trainguard.api.models.requests import (
    ProgressionSafetyRequest,
    WeeklyVolumeSafetyRequest,
    WorkoutSafetyRequest,
)
from trainguard.api.models.responses import SafetyResponse
from trainguard.config import get_engine, get_settings
from trainguard.guardrails import SafetyGuardrailEngine, normalize_context
from trainguard.schemas import SafetyCheck
from trainguard.trace import save_trace_from_check

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(check: SafetyCheck, trace_path: Optional[str] = None) -> SafetyResponse:
    return SafetyResponse(
        passed=check.passed,
        errors=[v.message for v in check.errors],
        warnings=[v.message for v in check.warnings],
        safety_check=check,
        trace_path=trace_path,
    )


@router.post("/safety/workout", response_model=SafetyResponse)
async def check_workout(
    request: WorkoutSafetyRequest,
    engine: SafetyGuardrailEngine = Depends(get_engine),
) -> SafetyResponse:
    """
    Check a workout candidate against the user's context.

    A failing check is a normal 200 response with `passed: false`; the caller
    decides whether to auto-correct, regenerate or reject.

    Raises:
        HTTPException: If the requested trace cannot be written
    """
    check = engine.check_workout(request.workout, request.context)

    trace_path = None
    if request.save_trace:
        try:
            trace_path = save_trace_from_check(
                check,
                check_name="workout",
                subject_id=request.subject_id,
                output_dir=get_settings().trace_dir,
                context=normalize_context(request.context),
            )
        except OSError as e:
            logger.exception("Failed to write guardrail trace")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Could not save trace: {e}",
            )

    return _to_response(check, str(trace_path) if trace_path else None)


@router.post("/safety/progression", response_model=SafetyResponse)
async def check_progression(
    request: ProgressionSafetyRequest,
    engine: SafetyGuardrailEngine = Depends(get_engine),
) -> SafetyResponse:
    """Check a proposed load increase."""
    check = engine.check_progression(
        request.previous_weight, request.new_weight, request.context
    )
    return _to_response(check)


@router.post("/safety/weekly-volume", response_model=SafetyResponse)
async def check_weekly_volume(
    request: WeeklyVolumeSafetyRequest,
    engine: SafetyGuardrailEngine = Depends(get_engine),
) -> SafetyResponse:
    """Check a week-over-week training volume change."""
    check = engine.check_weekly_volume(
        request.previous_volume, request.new_volume, request.context
    )
    return _to_response(check)
