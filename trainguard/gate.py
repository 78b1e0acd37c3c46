"""
Composition helpers for the calling application.

Wraps the validators, the guardrail engine and an abuse guard into the
flat shapes the UI and AI-generation layers consume.
"""

import logging
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, Field

from trainguard.abuse import AbuseGuard
from trainguard.composite import validate_set_log
from trainguard.guardrails import check_workout_safety

logger = logging.getLogger(__name__)


class GateOutcome(BaseModel):
    """Flattened validation outcome with plain message lists."""

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    sanitized: Optional[Any] = None


class AIResponse(BaseModel):
    """What an AI call reports back to `check_and_record_ai_request`."""

    success: bool
    tokens: int = 0
    cost_usd: float = 0.0
    data: Any = None


class AIRequestOutcome(BaseModel):
    allowed: bool
    success: bool
    reason: Optional[str] = None
    data: Any = None


def validate_and_sanitize_set_log(set_log: Any) -> GateOutcome:
    """Validate a set log; only hand back sanitized data when it is valid."""
    result = validate_set_log(set_log)

    if not result.valid:
        return GateOutcome(valid=False, errors=[e.message for e in result.errors])

    return GateOutcome(valid=True, sanitized=result.sanitized)


def validate_workout_with_safety(workout: Any, context: Any) -> GateOutcome:
    """Run the workout guardrails and split messages by severity."""
    check = check_workout_safety(workout, context)

    return GateOutcome(
        valid=check.passed,
        errors=[v.message for v in check.errors],
        warnings=[v.message for v in check.warnings],
    )


def check_and_record_ai_request(
    guard: AbuseGuard,
    user_id: str,
    text: str,
    request_type: str,
    ai_call: Callable[[], AIResponse],
) -> AIRequestOutcome:
    """
    Gate an AI call behind the abuse guard and record how it went.

    Args:
        guard: Abuse guard tracking the user's usage
        user_id: Requesting user
        text: User-supplied prompt text
        request_type: Label for the kind of request (e.g. 'workout_generation')
        ai_call: Performs the AI request

    Returns:
        AIRequestOutcome; `allowed` is False when the guard refused the request
    """
    check = guard.check(user_id, text, request_type)
    if not check.allowed:
        return AIRequestOutcome(allowed=False, success=False, reason=check.reason)

    try:
        response = ai_call()
    except Exception as e:
        logger.warning("AI request %s failed for user %s: %s", request_type, user_id, e)
        guard.record_failure(user_id)
        return AIRequestOutcome(allowed=True, success=False, reason=str(e) or "Unknown error")

    if not response.success:
        guard.record_failure(user_id)
        return AIRequestOutcome(allowed=True, success=False, reason="AI request failed")

    guard.record_request(user_id, response.tokens, response.cost_usd)
    return AIRequestOutcome(allowed=True, success=True, data=response.data)
