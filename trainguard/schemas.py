"""
Pydantic models for guardrail inputs and verdicts.

This module defines the core data structures for:
- Validation Results: Outcome of sanitizing and validating raw input fields
- User Context: Who the workout is for (age, level, injuries)
- Workout Candidates: AI-generated or user-authored workouts under evaluation
- Safety Checks: Pass/fail verdicts with itemized, severity-graded violations
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Enumerations
# ============================================================================

class FitnessLevel(str, Enum):
    """Self-reported or inferred training experience tier."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    ELITE = "elite"


class TrainingGoal(str, Enum):
    """Main objective of the user's training."""
    STRENGTH = "strength"
    HYPERTROPHY = "hypertrophy"
    ENDURANCE = "endurance"
    GENERAL_FITNESS = "general_fitness"
    WEIGHT_LOSS = "weight_loss"


class AgeGroup(str, Enum):
    """Age buckets used to select age-based limits."""
    TEEN = "TEEN"  # < 18
    YOUNG_ADULT = "YOUNG_ADULT"  # 18-35
    ADULT = "ADULT"  # 36-55
    SENIOR = "SENIOR"  # 56+


class ViolationSeverity(str, Enum):
    """Whether a violation fails the check or only informs."""
    WARNING = "warning"
    ERROR = "error"


class AbuseViolationType(str, Enum):
    """Reasons an AI request can be throttled."""
    RATE_LIMIT = "rate_limit"
    BUDGET_EXCEEDED = "budget_exceeded"
    CONTENT_VIOLATION = "content_violation"
    SUSPICIOUS_PATTERN = "suspicious_pattern"
    ACCOUNT_FLAGGED = "account_flagged"


# ============================================================================
# Input Validation
# ============================================================================


class ValidationError(BaseModel):
    """A single field-level validation failure."""

    code: str = Field(
        ...,
        description="Stable machine-readable identifier (e.g. 'REPS_OUT_OF_RANGE')"
    )
    message: str = Field(..., description="Human-readable explanation")
    field: Optional[str] = Field(None, description="Input field that failed")
    value: Any = Field(None, description="The offending raw value")


class ValidationResult(BaseModel):
    """
    Outcome of validating one raw value or record.

    `sanitized` is a best-effort canonical value and may be present even when
    `valid` is False. Callers must check `valid` before trusting it.
    """

    valid: bool = Field(..., description="True when no errors were detected")
    errors: List[ValidationError] = Field(
        default_factory=list,
        description="Errors in detection order"
    )
    sanitized: Optional[Any] = Field(
        None,
        description="Nearest safe canonical value, when one could be derived"
    )

    @model_validator(mode="after")
    def valid_matches_errors(self):
        """A result is valid exactly when it carries no errors."""
        if self.valid != (len(self.errors) == 0):
            raise ValueError("valid must be True if and only if errors is empty")
        return self

    @property
    def error_codes(self) -> List[str]:
        return [e.code for e in self.errors]


class SetLogInput(BaseModel):
    """Raw candidate for one performed set. Fields are untrusted."""

    reps: Any = None
    weight: Any = None
    rpe: Any = None
    notes: Any = None


class UserProfileInput(BaseModel):
    """Raw, partial profile candidate. Every field is independently optional."""

    name: Any = None
    age: Any = None
    weight_kg: Any = None
    height_cm: Any = None
    fitness_level: Any = None
    goal: Any = None


# ============================================================================
# Guardrail Inputs
# ============================================================================


class UserContext(BaseModel):
    """
    Who a workout is being evaluated for.

    Immutable and supplied fresh per evaluation. `age` is None when unknown,
    in which case the most conservative age limits apply.
    """

    model_config = ConfigDict(frozen=True)

    age: Optional[int] = Field(None, ge=0, le=130, description="Age in years")
    fitness_level: FitnessLevel = Field(
        FitnessLevel.BEGINNER,
        description="Training experience tier"
    )
    training_experience_months: int = Field(
        0, ge=0, description="Months of consistent training"
    )
    injuries: List[str] = Field(
        default_factory=list,
        description="Injury keys (e.g. 'shoulder', 'lower_back')"
    )
    medical_conditions: List[str] = Field(
        default_factory=list,
        description="Reported medical conditions (carried, not evaluated)"
    )


class ExerciseEntry(BaseModel):
    """One prescribed exercise inside a workout candidate."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Exercise identifier (e.g. 'overhead_press')")
    name: str = Field(..., description="Display name")
    muscle: str = Field(..., description="Primary muscle group")
    sets: int = Field(..., description="Prescribed sets")
    reps: int = Field(..., description="Prescribed reps per set")
    weight_kg: Optional[float] = Field(None, description="Load; None for bodyweight")
    rest_seconds: float = Field(..., description="Rest between sets")
    rpe: Optional[float] = Field(None, description="Target RPE, if prescribed")


class WorkoutCandidate(BaseModel):
    """A workout under safety evaluation. Never mutated by the engine."""

    model_config = ConfigDict(frozen=True)

    exercises: List[ExerciseEntry] = Field(default_factory=list)
    total_duration_minutes: float = Field(..., description="Planned session length")


# ============================================================================
# Safety Verdicts
# ============================================================================


class SafetyViolation(BaseModel):
    """One instance of a candidate failing a guardrail rule."""

    code: str = Field(..., description="Stable identifier (e.g. 'WEIGHT_TOO_HIGH')")
    severity: ViolationSeverity = Field(..., description="warning or error")
    message: str = Field(..., description="Human-readable explanation")
    field: Optional[str] = Field(None, description="Offending field path")
    original_value: Any = Field(None, description="Value that triggered the rule")
    safe_value: Any = Field(
        None,
        description="Nearest value the rule would accept, when one exists"
    )


class SafetyCheck(BaseModel):
    """
    Verdict of a guardrail evaluation.

    Violations are kept in evaluation order. Warnings never fail a check;
    any error-severity violation does.
    """

    passed: bool = Field(..., description="True when no error-severity violation exists")
    violations: List[SafetyViolation] = Field(default_factory=list)

    @model_validator(mode="after")
    def passed_matches_severities(self):
        """Ensure `passed` agrees with the violations carried."""
        expected = all(v.severity != ViolationSeverity.ERROR for v in self.violations)
        if self.passed != expected:
            raise ValueError("passed must be True exactly when no violation is an error")
        return self

    @classmethod
    def from_violations(cls, violations: List[SafetyViolation]) -> "SafetyCheck":
        passed = all(v.severity != ViolationSeverity.ERROR for v in violations)
        return cls(passed=passed, violations=list(violations))

    @property
    def errors(self) -> List[SafetyViolation]:
        return [v for v in self.violations if v.severity == ViolationSeverity.ERROR]

    @property
    def warnings(self) -> List[SafetyViolation]:
        return [v for v in self.violations if v.severity == ViolationSeverity.WARNING]

    @property
    def codes(self) -> List[str]:
        return [v.code for v in self.violations]


# ============================================================================
# Guardrail Traces
# ============================================================================


class GuardrailTrace(BaseModel):
    """Audit record of one guardrail decision, exported by trace.py."""

    check_name: str = Field(..., description="Which check produced the verdict")
    subject_id: str = Field(..., description="User or workout the check was about")
    timestamp: datetime = Field(default_factory=datetime.now)
    result: str = Field(
        "approved",
        description="One of 'approved', 'warning', 'refused'"
    )
    context: Optional[UserContext] = Field(None, description="Context evaluated against")
    violations: List[SafetyViolation] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)


# ============================================================================
# AI Abuse Prevention
# ============================================================================


class AbuseCheckResult(BaseModel):
    """Whether an AI request may proceed and, if not, why."""

    allowed: bool
    reason: Optional[str] = None
    wait_seconds: Optional[int] = None
    violation_type: Optional[AbuseViolationType] = None


class UserAILimits(BaseModel):
    """Remaining AI allowance for a user, for UI display."""

    requests_remaining_today: int
    requests_remaining_hour: int
    tokens_remaining_today: int
    budget_remaining_today_usd: float
    budget_remaining_month_usd: float
    is_flagged: bool
    can_make_request: bool
