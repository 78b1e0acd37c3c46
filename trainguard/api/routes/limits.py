"""
Limit Table API Routes

Read-only access to the policy tables, for UI hints such as slider maximums.
"""

from fastapi import APIRouter, Depends

from trainguard.api.models.responses import LimitsResponse
from trainguard.config import get_engine
from trainguard.guardrails import SafetyGuardrailEngine
from trainguard.limits import VALID_FITNESS_LEVELS, VALID_GOALS

router = APIRouter()


@router.get("/limits", response_model=LimitsResponse)
async def get_limits(engine: SafetyGuardrailEngine = Depends(get_engine)) -> LimitsResponse:
    """Return the limit tables the engine evaluates against."""
    tables = engine.limits
    return LimitsResponse(
        absolute=tables.absolute,
        age={group.value: limits for group, limits in tables.age.items()},
        level={level.value: limits for level, limits in tables.level.items()},
        injury=dict(tables.injury),
        workout=tables.workout,
        valid_fitness_levels=list(VALID_FITNESS_LEVELS),
        valid_goals=list(VALID_GOALS),
    )
