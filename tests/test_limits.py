"""
Tests for the static limit tables.

The default tables must satisfy the ordering properties the engine relies
on, and operator policy files must be held to the same rules.
"""

import json

import pytest

from trainguard.limits import (
    ABSOLUTE_LIMITS,
    AGE_LIMITS,
    DEFAULT_LIMITS,
    INJURY_RESTRICTIONS,
    LEVEL_LIMITS,
    VALID_FITNESS_LEVELS,
    VALID_GOALS,
    WORKOUT_LIMITS,
    LimitTables,
)
from trainguard.schemas import AgeGroup, FitnessLevel


def test_absolute_limits():
    assert ABSOLUTE_LIMITS.MAX_WORKOUT_DURATION_MINUTES == 180
    assert ABSOLUTE_LIMITS.MAX_SETS_PER_WORKOUT == 40
    assert ABSOLUTE_LIMITS.MAX_WEIGHT_KG == 500
    assert ABSOLUTE_LIMITS.MAX_RPE == 10
    assert (
        ABSOLUTE_LIMITS.DANGEROUS_WEIGHT_INCREASE_PERCENT
        > ABSOLUTE_LIMITS.MAX_WEIGHT_INCREASE_PERCENT_PER_WEEK
    )


def test_age_limits_cover_every_group():
    assert set(AGE_LIMITS) == set(AgeGroup)
    assert AGE_LIMITS[AgeGroup.SENIOR].max_sets_per_workout == 25
    assert AGE_LIMITS[AgeGroup.TEEN].require_supervision_note is True


def test_level_limits_are_monotonic():
    beginner = LEVEL_LIMITS[FitnessLevel.BEGINNER]
    intermediate = LEVEL_LIMITS[FitnessLevel.INTERMEDIATE]
    advanced = LEVEL_LIMITS[FitnessLevel.ADVANCED]
    elite = LEVEL_LIMITS[FitnessLevel.ELITE]

    assert (
        beginner.max_sets_per_workout
        < intermediate.max_sets_per_workout
        < advanced.max_sets_per_workout
        <= elite.max_sets_per_workout
    )
    assert beginner.min_rest_between_sets_seconds > elite.min_rest_between_sets_seconds
    assert beginner.max_rpe < 10
    assert elite.max_rpe == 10


def test_injury_restrictions():
    shoulder = INJURY_RESTRICTIONS["shoulder"]
    assert "shoulders" in shoulder.avoid_muscles
    assert "overhead_press" in shoulder.avoid_exercises
    assert set(INJURY_RESTRICTIONS) == {"shoulder", "lower_back", "knee", "wrist", "elbow"}


def test_public_tables_are_read_only():
    with pytest.raises(TypeError):
        AGE_LIMITS[AgeGroup.TEEN] = AGE_LIMITS[AgeGroup.ADULT]

    with pytest.raises(Exception):
        ABSOLUTE_LIMITS.MAX_WEIGHT_KG = 1000

    assert ABSOLUTE_LIMITS.MAX_WEIGHT_KG == 500


def test_workout_input_ranges():
    assert (WORKOUT_LIMITS.reps.min, WORKOUT_LIMITS.reps.max) == (1, 100)
    assert (WORKOUT_LIMITS.weight.min, WORKOUT_LIMITS.weight.max) == (0, 1000)
    assert (WORKOUT_LIMITS.rpe.min, WORKOUT_LIMITS.rpe.max) == (1, 10)


def test_valid_value_lists():
    assert VALID_FITNESS_LEVELS == ("beginner", "intermediate", "advanced", "elite")
    assert "strength" in VALID_GOALS
    assert "weight_loss" in VALID_GOALS


# Policy File Tests

def test_policy_file_overrides_absolute_limits(tmp_path):
    policy_path = tmp_path / "policy.json"
    policy_path.write_text(json.dumps({"absolute": {"MAX_WEIGHT_KG": 300}}))

    tables = LimitTables.from_file(policy_path)

    assert tables.absolute.MAX_WEIGHT_KG == 300
    assert tables.absolute.MAX_SETS_PER_WORKOUT == 40
    assert tables.level == DEFAULT_LIMITS.level


def test_policy_file_not_found(tmp_path):
    with pytest.raises(FileNotFoundError):
        LimitTables.from_file(tmp_path / "missing.json")


def test_policy_file_invalid_json(tmp_path):
    policy_path = tmp_path / "policy.json"
    policy_path.write_text("{not json")

    with pytest.raises(ValueError):
        LimitTables.from_file(policy_path)


def test_policy_file_rejects_non_monotonic_levels(tmp_path):
    level = {
        lv.value: limits.model_dump() for lv, limits in DEFAULT_LIMITS.level.items()
    }
    level["beginner"]["max_sets_per_workout"] = 50

    policy_path = tmp_path / "policy.json"
    policy_path.write_text(json.dumps({"level": level}))

    with pytest.raises(ValueError, match="max_sets_per_workout"):
        LimitTables.from_file(policy_path)


def test_policy_file_rejects_dangerous_below_normal(tmp_path):
    policy_path = tmp_path / "policy.json"
    policy_path.write_text(json.dumps({"absolute": {"DANGEROUS_WEIGHT_INCREASE_PERCENT": 5}}))

    with pytest.raises(ValueError):
        LimitTables.from_file(policy_path)
