"""
API Request Models

Bodies are deliberately loose: workout and context payloads are passed to the
guardrail engine as raw JSON so malformed AI output is reported as violations
instead of being rejected by request parsing.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class WorkoutSafetyRequest(BaseModel):
    """Request model for workout safety checks."""

    workout: Dict[str, Any] = Field(
        ..., description="Workout candidate: exercises and total_duration_minutes"
    )
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="User context: age, fitness_level, training_experience_months, injuries",
    )
    subject_id: str = Field("anonymous", description="User or workout ID for traces")
    save_trace: bool = Field(False, description="Write a guardrail trace to disk")


class ProgressionSafetyRequest(BaseModel):
    """Request model for load progression checks."""

    previous_weight: Any = Field(..., description="Previous load in kg")
    new_weight: Any = Field(..., description="Proposed load in kg")
    context: Dict[str, Any] = Field(default_factory=dict)


class WeeklyVolumeSafetyRequest(BaseModel):
    """Request model for weekly volume checks."""

    previous_volume: Any = Field(..., description="Last week's total volume")
    new_volume: Any = Field(..., description="This week's total volume")
    context: Dict[str, Any] = Field(default_factory=dict)
