"""
Safety guardrail engine.

This module implements the core safety mechanism gating AI-generated and
user-authored workouts. It evaluates candidates against layered limit tables
(absolute ceilings, age-based limits, level-based limits and injury
restrictions) and returns a verdict with itemized violations.

The engine checks ALL rules even after an error is found, so callers see the
complete list of problems in one pass. It never raises for malformed input:
missing or garbled fields fall back to the most conservative limits.
"""

import logging
import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel

from trainguard.fields import (
    validate_reps,
    validate_rest_seconds,
    validate_rpe,
    validate_sets,
    validate_weight,
)
from trainguard.limits import (
    DEFAULT_LIMITS,
    VALID_FITNESS_LEVELS,
    AgeGroupLimits,
    InjuryRestriction,
    LevelLimits,
    LimitTables,
)
from trainguard.primitives import (
    is_array,
    is_non_negative_number,
    is_number,
    is_string,
)
from trainguard.sanitizers import sanitize_array, sanitize_integer, sanitize_string
from trainguard.schemas import (
    AgeGroup,
    FitnessLevel,
    SafetyCheck,
    SafetyViolation,
    UserContext,
    ValidationResult,
    ViolationSeverity,
)

logger = logging.getLogger(__name__)

# Applied when a context carries no usable age or fitness level.
CONSERVATIVE_AGE_GROUP = AgeGroup.SENIOR
CONSERVATIVE_FITNESS_LEVEL = FitnessLevel.BEGINNER

MAX_PLAUSIBLE_AGE = 130
MAX_EXPERIENCE_MONTHS = 1200


# ============================================================================
# Context Helpers
# ============================================================================


def get_age_group(age: Any) -> AgeGroup:
    """
    Bucket an age into TEEN (<18), YOUNG_ADULT (18-35), ADULT (36-55) or
    SENIOR (56+). Upper edges are inclusive. Unusable input maps to the
    conservative group.
    """
    if not is_number(age):
        return CONSERVATIVE_AGE_GROUP
    if age < 18:
        return AgeGroup.TEEN
    if age <= 35:
        return AgeGroup.YOUNG_ADULT
    if age <= 55:
        return AgeGroup.ADULT
    return AgeGroup.SENIOR


def _read(record: Any, key: str) -> Any:
    """Read a field from raw JSON (mapping) or a model instance."""
    if isinstance(record, Mapping):
        return record.get(key)
    if isinstance(record, BaseModel):
        return getattr(record, key, None)
    return None


def _normalize_key(value: Any) -> str:
    """'Overhead Press' -> 'overhead_press'."""
    return re.sub(r"[\s\-]+", "_", sanitize_string(value, 200).lower())


def normalize_context(context: Any) -> UserContext:
    """
    Build a `UserContext` from untrusted input without raising.

    Unknown fitness levels become beginner, unusable ages become None
    (conservative age limits), and non-string injuries are dropped.
    """
    if isinstance(context, UserContext):
        return context

    age = _read(context, "age")
    if not is_non_negative_number(age) or age > MAX_PLAUSIBLE_AGE:
        age = None

    level = _read(context, "fitness_level")
    if is_string(level) and level in VALID_FITNESS_LEVELS:
        level = FitnessLevel(level)
    else:
        level = CONSERVATIVE_FITNESS_LEVEL

    return UserContext(
        age=int(age) if age is not None else None,
        fitness_level=level,
        training_experience_months=sanitize_integer(
            _read(context, "training_experience_months"), 0, MAX_EXPERIENCE_MONTHS
        ),
        injuries=_string_list(_read(context, "injuries")),
        medical_conditions=_string_list(_read(context, "medical_conditions")),
    )


def _string_list(value: Any) -> List[str]:
    """A bare string counts as a one-element list; non-strings are dropped."""
    if is_string(value):
        value = [value]
    return sanitize_array(value, is_string)


# ============================================================================
# Workout Normalization
# ============================================================================


class _Exercise(NamedTuple):
    label: str
    id: str
    name: str
    muscle: str
    sets: float
    reps: float
    weight_kg: float
    rest_seconds: float
    rpe: Optional[float]


class _Workout(NamedTuple):
    exercises: List[_Exercise]
    total_duration_minutes: float


def _structural_violation(code: str, field: str, message: str, value: Any) -> SafetyViolation:
    return SafetyViolation(
        code=code,
        severity=ViolationSeverity.ERROR,
        message=message,
        field=field,
        original_value=value,
    )


def _numeric_field(
    raw: Any,
    validator: Callable[[Any], ValidationResult],
    field: str,
    violations: List[SafetyViolation],
) -> float:
    """
    Run a field validator over one exercise value.

    Wrong types and negative values are structural errors and fall back to the
    validator's sanitized value. Magnitude is left to the guardrail rules, so a
    well-formed but excessive value is passed through unchanged.
    """
    result = validator(raw)
    type_error = any(e.code.startswith("INVALID_") for e in result.errors)
    if is_non_negative_number(raw) and not type_error:
        return raw

    message = result.errors[0].message if result.errors else f"{field} is malformed"
    violation = _structural_violation("INVALID_EXERCISE_DATA", field, message, raw)
    violations.append(violation.model_copy(update={"safe_value": result.sanitized}))
    return result.sanitized if result.sanitized is not None else 0


def _normalize_workout(workout: Any) -> Tuple[_Workout, List[SafetyViolation]]:
    violations: List[SafetyViolation] = []

    if not isinstance(workout, (Mapping, BaseModel)):
        violations.append(_structural_violation(
            "INVALID_WORKOUT_DATA", "workout", "Workout must be an object", workout
        ))
        return _Workout(exercises=[], total_duration_minutes=0), violations

    raw_exercises = _read(workout, "exercises")
    if not is_array(raw_exercises):
        violations.append(_structural_violation(
            "INVALID_WORKOUT_DATA", "exercises", "Exercises must be a list", raw_exercises
        ))
        raw_exercises = []

    exercises: List[_Exercise] = []
    for index, raw in enumerate(raw_exercises):
        if not isinstance(raw, (Mapping, BaseModel)):
            violations.append(_structural_violation(
                "INVALID_EXERCISE_DATA",
                f"exercises[{index}]",
                "Exercise must be an object",
                raw,
            ))
            continue

        exercise_id = sanitize_string(_read(raw, "id"), 100)
        label = exercise_id or f"#{index}"
        prefix = f"exercise_{label}"

        raw_weight = _read(raw, "weight_kg")
        weight = 0
        if raw_weight is not None:
            weight = _numeric_field(raw_weight, validate_weight, f"{prefix}_weight", violations)

        raw_rpe = _read(raw, "rpe")
        rpe = None
        if raw_rpe is not None:
            rpe = _numeric_field(raw_rpe, validate_rpe, f"{prefix}_rpe", violations)

        exercises.append(_Exercise(
            label=label,
            id=exercise_id,
            name=sanitize_string(_read(raw, "name"), 200),
            muscle=sanitize_string(_read(raw, "muscle"), 100),
            sets=_numeric_field(_read(raw, "sets"), validate_sets, f"{prefix}_sets", violations),
            reps=_numeric_field(_read(raw, "reps"), validate_reps, f"{prefix}_reps", violations),
            weight_kg=weight,
            rest_seconds=_numeric_field(
                _read(raw, "rest_seconds"), validate_rest_seconds, f"{prefix}_rest", violations
            ),
            rpe=rpe,
        ))

    duration = _read(workout, "total_duration_minutes")
    if not is_non_negative_number(duration):
        violations.append(_structural_violation(
            "INVALID_WORKOUT_DATA",
            "duration",
            "Total duration must be a non-negative number of minutes",
            duration,
        ))
        duration = 0

    return _Workout(exercises=exercises, total_duration_minutes=duration), violations


# ============================================================================
# Engine
# ============================================================================


class SafetyGuardrailEngine:
    """
    Evaluates workouts, progressions and weekly volume against limit tables.

    Holds no mutable state; a single instance can serve any number of
    concurrent callers.
    """

    def __init__(self, limits: LimitTables = DEFAULT_LIMITS):
        """
        Initialize engine with a set of limit tables.

        Args:
            limits: The policy tables to evaluate against
        """
        self.limits = limits
        self._workout_rules = (
            self._check_exercise_count,
            self._check_total_sets,
            self._check_sets_per_exercise,
            self._check_reps_per_set,
            self._check_duration,
            self._check_weight,
            self._check_rest,
            self._check_rpe,
            self._check_injuries,
        )

    @classmethod
    def from_file(cls, policy_path: Path) -> "SafetyGuardrailEngine":
        """
        Load limit tables from a JSON policy file and create an engine.

        Raises:
            FileNotFoundError: If policy file doesn't exist
            ValueError: If policy JSON is invalid
        """
        return cls(LimitTables.from_file(policy_path))

    # ------------------------------------------------------------------
    # Limit lookups
    # ------------------------------------------------------------------

    def age_limits(self, context: UserContext) -> AgeGroupLimits:
        if context.age is None:
            return self.limits.age[CONSERVATIVE_AGE_GROUP]
        return self.limits.age[get_age_group(context.age)]

    def level_limits(self, context: UserContext) -> LevelLimits:
        return self.limits.level[context.fitness_level]

    def max_sets_per_workout(self, context: UserContext) -> int:
        """Stricter of the age and level set ceilings."""
        return min(
            self.age_limits(context).max_sets_per_workout,
            self.level_limits(context).max_sets_per_workout,
        )

    def max_weight_increase_percent(self, context: UserContext) -> float:
        """Normal weekly load increase bound for this context."""
        return min(
            self.age_limits(context).max_weight_increase_percent,
            self.level_limits(context).max_weight_increase_percent,
            self.limits.absolute.MAX_WEIGHT_INCREASE_PERCENT_PER_WEEK,
        )

    def _restrictions_for(self, context: UserContext) -> List[Tuple[str, InjuryRestriction]]:
        restrictions = []
        for injury in context.injuries:
            key = _normalize_key(injury)
            restriction = self.limits.injury.get(key)
            if restriction is None:
                logger.debug("No restriction table for injury %r; ignoring", injury)
                continue
            restrictions.append((key, restriction))
        return restrictions

    # ------------------------------------------------------------------
    # Public checks
    # ------------------------------------------------------------------

    def check_workout(self, workout: Any, context: Any) -> SafetyCheck:
        """
        Check workout safety against user context.

        Args:
            workout: WorkoutCandidate or raw mapping with the same keys
            context: UserContext or raw mapping with the same keys

        Returns:
            SafetyCheck with violations in evaluation order
        """
        ctx = normalize_context(context)
        normalized, violations = _normalize_workout(workout)

        for rule in self._workout_rules:
            violations.extend(rule(normalized, ctx))

        check = SafetyCheck.from_violations(violations)
        logger.debug(
            "Workout check: passed=%s exercises=%d violations=%s",
            check.passed,
            len(normalized.exercises),
            check.codes,
        )
        return check

    def check_progression(
        self, previous_weight: Any, new_weight: Any, context: Any
    ) -> SafetyCheck:
        """
        Check a session-to-session load change.

        Increases up to the context's normal bound pass; above it a warning is
        raised, and at or above the dangerous bound the check fails. A
        previous weight of zero means there is no baseline to compare against.
        """
        ctx = normalize_context(context)
        absolute = self.limits.absolute
        violations: List[SafetyViolation] = []

        if not is_number(previous_weight) or not is_non_negative_number(new_weight):
            violations.append(SafetyViolation(
                code="INVALID_PROGRESSION_INPUT",
                severity=ViolationSeverity.ERROR,
                message="Previous and new weight must be numbers; new weight cannot be negative",
                field="weight_increase",
                original_value={"previous": previous_weight, "new": new_weight},
            ))
            return SafetyCheck.from_violations(violations)

        if previous_weight > 0:
            increase = (float(new_weight) - previous_weight) * 100 / previous_weight
            normal = self.max_weight_increase_percent(ctx)
            dangerous = absolute.DANGEROUS_WEIGHT_INCREASE_PERCENT
            safe_weight = min(
                round(previous_weight * (1 + normal / 100), 2), absolute.MAX_WEIGHT_KG
            )

            if increase >= dangerous:
                violations.append(SafetyViolation(
                    code="PROGRESSION_DANGEROUS",
                    severity=ViolationSeverity.ERROR,
                    message=f"A {increase:.1f}% load increase is unsafe (limit {dangerous:g}%)",
                    field="weight_increase",
                    original_value=new_weight,
                    safe_value=safe_weight,
                ))
            elif increase > normal:
                violations.append(SafetyViolation(
                    code="PROGRESSION_TOO_FAST",
                    severity=ViolationSeverity.WARNING,
                    message=f"Recommended maximum increase is {normal:g}% per week",
                    field="weight_increase",
                    original_value=new_weight,
                    safe_value=safe_weight,
                ))

        if new_weight > absolute.MAX_WEIGHT_KG:
            violations.append(SafetyViolation(
                code="WEIGHT_TOO_HIGH",
                severity=ViolationSeverity.ERROR,
                message=f"Maximum weight is {absolute.MAX_WEIGHT_KG:g}kg",
                field="new_weight",
                original_value=new_weight,
                safe_value=absolute.MAX_WEIGHT_KG,
            ))

        check = SafetyCheck.from_violations(violations)
        logger.debug(
            "Progression check (%s): passed=%s violations=%s",
            ctx.fitness_level.value,
            check.passed,
            check.codes,
        )
        return check

    def check_weekly_volume(
        self, previous_volume: Any, new_volume: Any, context: Any
    ) -> SafetyCheck:
        """
        Check the week-over-week change in total training volume.

        A first week (no previous volume) always passes. A jump above the
        weekly limit yields a VOLUME_SPIKE warning.
        """
        ctx = normalize_context(context)
        limit = self.limits.absolute.MAX_VOLUME_INCREASE_PERCENT_PER_WEEK
        violations: List[SafetyViolation] = []

        if not is_non_negative_number(previous_volume) or not is_non_negative_number(new_volume):
            violations.append(SafetyViolation(
                code="INVALID_VOLUME_INPUT",
                severity=ViolationSeverity.ERROR,
                message="Weekly volumes must be non-negative numbers",
                field="weekly_volume",
                original_value={"previous": previous_volume, "new": new_volume},
            ))
        elif previous_volume > 0:
            increase = (float(new_volume) - previous_volume) * 100 / previous_volume
            if increase > limit:
                violations.append(SafetyViolation(
                    code="VOLUME_SPIKE",
                    severity=ViolationSeverity.WARNING,
                    message=f"A {increase:.0f}% volume increase may raise injury risk",
                    field="weekly_volume",
                    original_value=new_volume,
                    safe_value=round(previous_volume * (1 + limit / 100), 2),
                ))

        check = SafetyCheck.from_violations(violations)
        logger.debug(
            "Weekly volume check (%s): passed=%s violations=%s",
            ctx.fitness_level.value,
            check.passed,
            check.codes,
        )
        return check

    # ------------------------------------------------------------------
    # Workout rules
    # ------------------------------------------------------------------

    def _check_exercise_count(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = min(
            self.level_limits(ctx).max_exercises_per_workout,
            self.limits.absolute.MAX_EXERCISES_PER_WORKOUT,
        )
        count = len(workout.exercises)
        if count <= ceiling:
            return []
        return [SafetyViolation(
            code="TOO_MANY_EXERCISES",
            severity=ViolationSeverity.WARNING,
            message=f"Maximum of {ceiling} exercises for this profile",
            field="exercises",
            original_value=count,
            safe_value=ceiling,
        )]

    def _check_total_sets(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = self.max_sets_per_workout(ctx)
        hard_ceiling = self.limits.absolute.MAX_SETS_PER_WORKOUT
        total = sum(float(e.sets) for e in workout.exercises)

        if total > hard_ceiling:
            severity = ViolationSeverity.ERROR
        elif total > ceiling:
            severity = ViolationSeverity.WARNING
        else:
            return []

        return [SafetyViolation(
            code="TOO_MANY_SETS",
            severity=severity,
            message=f"{total:g} total sets exceeds the maximum of {ceiling} for this profile",
            field="total_sets",
            original_value=total if math.isfinite(total) else None,
            safe_value=min(ceiling, hard_ceiling),
        )]

    def _check_sets_per_exercise(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = self.limits.absolute.MAX_SETS_PER_EXERCISE
        return [
            SafetyViolation(
                code="TOO_MANY_SETS_PER_EXERCISE",
                severity=ViolationSeverity.WARNING,
                message=f"Maximum of {ceiling} sets per exercise",
                field=f"exercise_{e.label}_sets",
                original_value=e.sets,
                safe_value=ceiling,
            )
            for e in workout.exercises
            if e.sets > ceiling
        ]

    def _check_reps_per_set(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = self.limits.absolute.MAX_REPS_PER_SET
        return [
            SafetyViolation(
                code="TOO_MANY_REPS",
                severity=ViolationSeverity.WARNING,
                message=f"Maximum of {ceiling} reps per set",
                field=f"exercise_{e.label}_reps",
                original_value=e.reps,
                safe_value=ceiling,
            )
            for e in workout.exercises
            if e.reps > ceiling
        ]

    def _check_duration(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = self.limits.absolute.MAX_WORKOUT_DURATION_MINUTES
        if workout.total_duration_minutes <= ceiling:
            return []
        return [SafetyViolation(
            code="DURATION_TOO_LONG",
            severity=ViolationSeverity.ERROR,
            message=f"Maximum workout duration is {ceiling} minutes",
            field="duration",
            original_value=workout.total_duration_minutes,
            safe_value=ceiling,
        )]

    def _check_weight(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = self.limits.absolute.MAX_WEIGHT_KG
        return [
            SafetyViolation(
                code="WEIGHT_TOO_HIGH",
                severity=ViolationSeverity.ERROR,
                message=f"Maximum weight is {ceiling:g}kg",
                field=f"exercise_{e.label}_weight",
                original_value=e.weight_kg,
                safe_value=ceiling,
            )
            for e in workout.exercises
            if e.weight_kg > ceiling
        ]

    def _check_rest(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        minimum = self.level_limits(ctx).min_rest_between_sets_seconds
        return [
            SafetyViolation(
                code="REST_TOO_SHORT",
                severity=ViolationSeverity.WARNING,
                message=f"Minimum rest is {minimum}s for this fitness level",
                field=f"exercise_{e.label}_rest",
                original_value=e.rest_seconds,
                safe_value=minimum,
            )
            for e in workout.exercises
            if e.rest_seconds < minimum
        ]

    def _check_rpe(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        ceiling = min(self.age_limits(ctx).max_rpe, self.level_limits(ctx).max_rpe)
        return [
            SafetyViolation(
                code="RPE_TOO_HIGH",
                severity=ViolationSeverity.WARNING,
                message=f"Maximum target RPE is {ceiling:g} for this profile",
                field=f"exercise_{e.label}_rpe",
                original_value=e.rpe,
                safe_value=ceiling,
            )
            for e in workout.exercises
            if e.rpe is not None and e.rpe > ceiling
        ]

    def _check_injuries(self, workout: _Workout, ctx: UserContext) -> List[SafetyViolation]:
        restrictions = self._restrictions_for(ctx)
        violations = []

        for exercise in workout.exercises:
            exercise_id = _normalize_key(exercise.id)
            exercise_name = _normalize_key(exercise.name)
            muscle = _normalize_key(exercise.muscle)

            for injury, restriction in restrictions:
                pattern_hit = any(
                    pattern in exercise_id or pattern in exercise_name
                    for pattern in restriction.avoid_exercises
                )
                muscle_hit = bool(muscle) and muscle in restriction.avoid_muscles
                if not (pattern_hit or muscle_hit):
                    continue

                display = exercise.name or exercise.id or exercise.label
                message = f"{display} is not recommended with a {injury} injury"
                if restriction.warning_message:
                    message = f"{message}: {restriction.warning_message}"
                violations.append(SafetyViolation(
                    code="EXERCISE_RESTRICTED_INJURY",
                    severity=ViolationSeverity.ERROR,
                    message=message,
                    field=f"exercise_{exercise.label}",
                    original_value=exercise.id or exercise.name,
                ))

        return violations


# ============================================================================
# Module-level API
# ============================================================================

_default_engine = SafetyGuardrailEngine()


def check_workout_safety(workout: Any, context: Any) -> SafetyCheck:
    return _default_engine.check_workout(workout, context)


def check_progression_safety(previous_weight: Any, new_weight: Any, context: Any) -> SafetyCheck:
    return _default_engine.check_progression(previous_weight, new_weight, context)


def check_weekly_volume_safety(previous_volume: Any, new_volume: Any, context: Any) -> SafetyCheck:
    return _default_engine.check_weekly_volume(previous_volume, new_volume, context)
