"""
Static safety limit tables.

These limits are hardcoded policy and cannot be overridden by AI-generated
content. They are loaded once per process and exposed read-only; calling code
may read them (e.g. for slider maximums) but never mutate them.

An operator may replace the defaults at startup with a JSON policy file via
`LimitTables.from_file`, which validates the same ordering properties the
defaults satisfy.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from trainguard.schemas import AgeGroup, FitnessLevel, TrainingGoal


# ============================================================================
# Table Row Models
# ============================================================================


class AbsoluteLimits(BaseModel):
    """Ceilings that no user context can raise."""

    model_config = ConfigDict(frozen=True)

    # Per session
    MAX_WORKOUT_DURATION_MINUTES: int = 180
    MAX_EXERCISES_PER_WORKOUT: int = 15
    MAX_SETS_PER_WORKOUT: int = 40
    MAX_SETS_PER_EXERCISE: int = 10
    MAX_REPS_PER_SET: int = 50
    MAX_WEIGHT_KG: float = 500

    # Per week
    MAX_WORKOUTS_PER_WEEK: int = 7
    MAX_CONSECUTIVE_TRAINING_DAYS: int = 6
    MIN_REST_DAYS_PER_WEEK: int = 1

    # Volume (per muscle per week)
    MAX_SETS_PER_MUSCLE_PER_WEEK: int = 30
    MAX_VOLUME_PER_MUSCLE_PER_WEEK_KG: float = 50000

    # Intensity
    MAX_RPE: float = 10
    MAX_PERCENTAGE_1RM: float = 100

    # Progression (percent)
    MAX_WEIGHT_INCREASE_PERCENT_PER_WEEK: float = 10
    DANGEROUS_WEIGHT_INCREASE_PERCENT: float = 20
    MAX_VOLUME_INCREASE_PERCENT_PER_WEEK: float = 15

    @model_validator(mode="after")
    def dangerous_above_normal(self):
        if self.DANGEROUS_WEIGHT_INCREASE_PERCENT <= self.MAX_WEIGHT_INCREASE_PERCENT_PER_WEEK:
            raise ValueError(
                "DANGEROUS_WEIGHT_INCREASE_PERCENT must exceed "
                "MAX_WEIGHT_INCREASE_PERCENT_PER_WEEK"
            )
        return self


class AgeGroupLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_workouts_per_week: int
    max_sets_per_workout: int
    max_rpe: float
    max_weight_increase_percent: float
    require_supervision_note: bool = False


class LevelLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_workouts_per_week: int
    max_sets_per_workout: int
    max_exercises_per_workout: int
    max_rpe: float
    min_rest_between_sets_seconds: int
    max_weight_increase_percent: float
    allow_advanced_techniques: bool
    require_compound_priority: bool


class InjuryRestriction(BaseModel):
    """Exercises and muscles to avoid while an injury is reported."""

    model_config = ConfigDict(frozen=True)

    avoid_muscles: Tuple[str, ...] = ()
    avoid_exercises: Tuple[str, ...] = ()
    max_weight_percent: float = Field(100, ge=0, le=100)
    require_warmup: bool = True
    warning_message: str = ""


class FieldRange(BaseModel):
    """Inclusive numeric range accepted for a raw input field."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def ordered(self):
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class WorkoutInputLimits(BaseModel):
    """Plausible ranges for raw workout input (form fields, AI JSON)."""

    model_config = ConfigDict(frozen=True)

    reps: FieldRange = FieldRange(min=1, max=100)
    weight: FieldRange = FieldRange(min=0, max=1000)  # kg
    sets: FieldRange = FieldRange(min=1, max=20)
    rest: FieldRange = FieldRange(min=0, max=600)  # seconds
    rpe: FieldRange = FieldRange(min=1, max=10)
    duration: FieldRange = FieldRange(min=5, max=240)  # minutes
    exercises: FieldRange = FieldRange(min=1, max=20)


# ============================================================================
# Default Tables
# ============================================================================

_DEFAULT_AGE_LIMITS: Dict[AgeGroup, AgeGroupLimits] = {
    AgeGroup.TEEN: AgeGroupLimits(
        max_workouts_per_week=5,
        max_sets_per_workout=25,
        max_rpe=8,
        max_weight_increase_percent=5,
        require_supervision_note=True,
    ),
    AgeGroup.YOUNG_ADULT: AgeGroupLimits(
        max_workouts_per_week=7,
        max_sets_per_workout=40,
        max_rpe=10,
        max_weight_increase_percent=10,
    ),
    AgeGroup.ADULT: AgeGroupLimits(
        max_workouts_per_week=6,
        max_sets_per_workout=35,
        max_rpe=9,
        max_weight_increase_percent=7,
    ),
    AgeGroup.SENIOR: AgeGroupLimits(
        max_workouts_per_week=5,
        max_sets_per_workout=25,
        max_rpe=8,
        max_weight_increase_percent=5,
        require_supervision_note=True,
    ),
}

_DEFAULT_LEVEL_LIMITS: Dict[FitnessLevel, LevelLimits] = {
    FitnessLevel.BEGINNER: LevelLimits(
        max_workouts_per_week=4,
        max_sets_per_workout=20,
        max_exercises_per_workout=6,
        max_rpe=7,
        min_rest_between_sets_seconds=90,
        max_weight_increase_percent=10,
        allow_advanced_techniques=False,
        require_compound_priority=True,
    ),
    FitnessLevel.INTERMEDIATE: LevelLimits(
        max_workouts_per_week=5,
        max_sets_per_workout=30,
        max_exercises_per_workout=8,
        max_rpe=9,
        min_rest_between_sets_seconds=60,
        max_weight_increase_percent=10,
        allow_advanced_techniques=True,
        require_compound_priority=True,
    ),
    FitnessLevel.ADVANCED: LevelLimits(
        max_workouts_per_week=6,
        max_sets_per_workout=35,
        max_exercises_per_workout=10,
        max_rpe=10,
        min_rest_between_sets_seconds=45,
        max_weight_increase_percent=7,
        allow_advanced_techniques=True,
        require_compound_priority=False,
    ),
    FitnessLevel.ELITE: LevelLimits(
        max_workouts_per_week=7,
        max_sets_per_workout=40,
        max_exercises_per_workout=12,
        max_rpe=10,
        min_rest_between_sets_seconds=30,
        max_weight_increase_percent=5,
        allow_advanced_techniques=True,
        require_compound_priority=False,
    ),
}

_DEFAULT_INJURY_RESTRICTIONS: Dict[str, InjuryRestriction] = {
    "shoulder": InjuryRestriction(
        avoid_muscles=("shoulders",),
        avoid_exercises=("overhead_press", "upright_row", "behind_neck_press"),
        max_weight_percent=70,
        warning_message="Avoid overhead movements and extreme rotations",
    ),
    "lower_back": InjuryRestriction(
        avoid_exercises=("deadlift", "good_morning", "barbell_row"),
        max_weight_percent=60,
        warning_message="Avoid heavy axial loading",
    ),
    "knee": InjuryRestriction(
        avoid_exercises=("leg_extension", "deep_squat", "jumping_exercises"),
        max_weight_percent=70,
        warning_message="Avoid full extension under load and impact",
    ),
    "wrist": InjuryRestriction(
        avoid_exercises=("barbell_curl", "wrist_curl"),
        max_weight_percent=80,
        warning_message="Use neutral grips when possible",
    ),
    "elbow": InjuryRestriction(
        avoid_exercises=("skull_crushers", "close_grip_bench"),
        max_weight_percent=75,
        warning_message="Avoid full extension under load",
    ),
}


# ============================================================================
# Limit Table Bundle
# ============================================================================


class LimitTables(BaseModel):
    """
    Every policy table the guardrail engine reads.

    Validation enforces that the level tables stay monotonic: beginners get
    fewer sets, more rest and a lower RPE ceiling than elite athletes.
    """

    model_config = ConfigDict(frozen=True)

    absolute: AbsoluteLimits = Field(default_factory=AbsoluteLimits)
    age: Dict[AgeGroup, AgeGroupLimits] = Field(
        default_factory=lambda: dict(_DEFAULT_AGE_LIMITS)
    )
    level: Dict[FitnessLevel, LevelLimits] = Field(
        default_factory=lambda: dict(_DEFAULT_LEVEL_LIMITS)
    )
    injury: Dict[str, InjuryRestriction] = Field(
        default_factory=lambda: dict(_DEFAULT_INJURY_RESTRICTIONS)
    )
    workout: WorkoutInputLimits = Field(default_factory=WorkoutInputLimits)

    @model_validator(mode="after")
    def tables_complete_and_monotonic(self):
        missing_ages = [g.value for g in AgeGroup if g not in self.age]
        if missing_ages:
            raise ValueError(f"Age limits missing groups: {missing_ages}")

        missing_levels = [lv.value for lv in FitnessLevel if lv not in self.level]
        if missing_levels:
            raise ValueError(f"Level limits missing levels: {missing_levels}")

        beginner = self.level[FitnessLevel.BEGINNER]
        intermediate = self.level[FitnessLevel.INTERMEDIATE]
        advanced = self.level[FitnessLevel.ADVANCED]
        elite = self.level[FitnessLevel.ELITE]

        if not (
            beginner.max_sets_per_workout
            < intermediate.max_sets_per_workout
            < advanced.max_sets_per_workout
            <= elite.max_sets_per_workout
        ):
            raise ValueError("max_sets_per_workout must increase with fitness level")

        if beginner.min_rest_between_sets_seconds <= elite.min_rest_between_sets_seconds:
            raise ValueError("Beginners must require more rest than elite athletes")

        if beginner.max_rpe >= 10 or elite.max_rpe != 10:
            raise ValueError("Beginner max_rpe must be below 10 and elite max_rpe must be 10")

        return self

    @classmethod
    def from_file(cls, policy_path: Path) -> "LimitTables":
        """
        Load limit tables from a JSON policy file.

        Sections absent from the file keep their defaults.

        Args:
            policy_path: Path to policy JSON file

        Returns:
            LimitTables instance

        Raises:
            FileNotFoundError: If policy file doesn't exist
            ValueError: If policy JSON is invalid or breaks table ordering
        """
        if not policy_path.exists():
            raise FileNotFoundError(f"Limit policy file not found: {policy_path}")

        with open(policy_path, "r") as f:
            try:
                policy_data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid limit policy file: {e}")

        try:
            return cls(**policy_data)
        except Exception as e:
            raise ValueError(f"Invalid limit policy file: {e}")


DEFAULT_LIMITS = LimitTables()


# ============================================================================
# Public Read-Only Views
# ============================================================================

ABSOLUTE_LIMITS: AbsoluteLimits = DEFAULT_LIMITS.absolute
AGE_LIMITS: Mapping[AgeGroup, AgeGroupLimits] = MappingProxyType(DEFAULT_LIMITS.age)
LEVEL_LIMITS: Mapping[FitnessLevel, LevelLimits] = MappingProxyType(DEFAULT_LIMITS.level)
INJURY_RESTRICTIONS: Mapping[str, InjuryRestriction] = MappingProxyType(DEFAULT_LIMITS.injury)
WORKOUT_LIMITS: WorkoutInputLimits = DEFAULT_LIMITS.workout

VALID_FITNESS_LEVELS: Tuple[str, ...] = tuple(level.value for level in FitnessLevel)
VALID_GOALS: Tuple[str, ...] = tuple(goal.value for goal in TrainingGoal)
