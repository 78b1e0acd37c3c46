"""
API Response Models

Pydantic models for API responses.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from trainguard.limits import (
    AbsoluteLimits,
    AgeGroupLimits,
    InjuryRestriction,
    LevelLimits,
    WorkoutInputLimits,
)
from trainguard.schemas import SafetyCheck


class SafetyResponse(BaseModel):
    """Response for the /api/safety endpoints."""

    passed: bool = Field(..., description="Whether the candidate may be applied")
    errors: List[str] = Field(default_factory=list, description="Error messages")
    warnings: List[str] = Field(default_factory=list, description="Warning messages")
    safety_check: SafetyCheck = Field(..., description="Full verdict")
    trace_path: Optional[str] = Field(None, description="Saved trace file, if requested")


class LimitsResponse(BaseModel):
    """Response for GET /api/limits."""

    absolute: AbsoluteLimits
    age: Dict[str, AgeGroupLimits]
    level: Dict[str, LevelLimits]
    injury: Dict[str, InjuryRestriction]
    workout: WorkoutInputLimits
    valid_fitness_levels: List[str]
    valid_goals: List[str]
