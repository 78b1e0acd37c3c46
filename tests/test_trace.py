"""
Tests for guardrail trace generation and export.

Ensures that traces are properly built and can be exported to JSON and Markdown.
"""

import json
from pathlib import Path
import tempfile

import pytest

from trainguard.guardrails import check_workout_safety
from trainguard.schemas import (
    FitnessLevel,
    SafetyViolation,
    UserContext,
    ViolationSeverity,
)
from trainguard.trace import (
    GuardrailTraceBuilder,
    load_trace_from_file,
    save_trace_from_check,
)


# Fixtures

@pytest.fixture
def context():
    return UserContext(
        age=30,
        fitness_level=FitnessLevel.INTERMEDIATE,
        training_experience_months=24,
        injuries=["shoulder"],
    )


@pytest.fixture
def trace_builder(context):
    """Create a basic trace builder."""
    return GuardrailTraceBuilder(
        check_name="workout",
        subject_id="test_user_001",
        context=context,
    )


@pytest.fixture
def refusal_trace_builder(context):
    """Create a trace builder with a refused workout."""
    builder = GuardrailTraceBuilder("workout", "test_user_002", context)

    builder.add_violation(SafetyViolation(
        code="REST_TOO_SHORT",
        severity=ViolationSeverity.WARNING,
        message="Minimum rest is 60s for this fitness level",
        field="exercise_bench_press_rest",
        original_value=30,
        safe_value=60,
    ))
    builder.add_violation(SafetyViolation(
        code="EXERCISE_RESTRICTED_INJURY",
        severity=ViolationSeverity.ERROR,
        message="Overhead Press is not recommended with a shoulder injury",
        field="exercise_overhead_press",
        original_value="overhead_press",
    ))
    builder.add_note("Generated by workout planner v2")

    return builder


def test_trace_builder_initialization(trace_builder):
    """Test that trace builder initializes correctly."""
    trace = trace_builder.trace

    assert trace.check_name == "workout"
    assert trace.subject_id == "test_user_001"
    assert trace.result == "approved"
    assert trace.violations == []
    assert trace.notes == []


def test_result_follows_worst_severity(trace_builder):
    trace_builder.add_violation(SafetyViolation(
        code="RPE_TOO_HIGH", severity=ViolationSeverity.WARNING, message="High RPE"
    ))
    assert trace_builder.trace.result == "warning"

    trace_builder.add_violation(SafetyViolation(
        code="WEIGHT_TOO_HIGH", severity=ViolationSeverity.ERROR, message="Too heavy"
    ))
    assert trace_builder.trace.result == "refused"


def test_record_check(trace_builder):
    """Violations of a finished check are copied in order."""
    check = check_workout_safety(
        {
            "exercises": [{
                "id": "overhead_press",
                "name": "Overhead Press",
                "muscle": "shoulders",
                "sets": 3,
                "reps": 8,
                "weight_kg": 40,
                "rest_seconds": 90,
            }],
            "total_duration_minutes": 200,
        },
        trace_builder.trace.context,
    )

    trace_builder.record_check(check)

    assert [v.code for v in trace_builder.trace.violations] == check.codes
    assert trace_builder.trace.result == "refused"


def test_export_to_json(refusal_trace_builder):
    """Test JSON export."""
    data = refusal_trace_builder.export_to_json()

    assert data["check_name"] == "workout"
    assert data["subject_id"] == "test_user_002"
    assert data["result"] == "refused"
    assert data["context"]["fitness_level"] == "intermediate"
    assert len(data["violations"]) == 2
    assert data["violations"][1]["severity"] == "error"
    json.dumps(data)


def test_export_to_markdown_approved(trace_builder):
    markdown = trace_builder.export_to_markdown()

    assert "# Guardrail Trace" in markdown
    assert "No guardrail violations detected" in markdown
    assert "APPROVED" in markdown
    assert "**Injuries:** shoulder" in markdown


def test_export_to_markdown_refusal(refusal_trace_builder):
    markdown = refusal_trace_builder.export_to_markdown()

    assert "REFUSED" in markdown
    assert "1 errors, 1 warnings" in markdown
    assert "`EXERCISE_RESTRICTED_INJURY`" in markdown
    assert "**Safe Value:** `60`" in markdown
    assert "## Notes" in markdown
    assert "Generated by workout planner v2" in markdown


def test_export_to_markdown_without_context():
    builder = GuardrailTraceBuilder("progression", "user_3")
    markdown = builder.export_to_markdown()

    assert "## Context" not in markdown
    assert "`progression`" in markdown


def test_save_to_file_json(refusal_trace_builder):
    """Test saving trace to JSON file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        output_dir = Path(tmpdir)
        filepath = refusal_trace_builder.save_to_file(output_dir, format="json")

        assert filepath.exists()
        assert filepath.suffix == ".json"
        assert filepath.name.startswith("trace_workout_test_user_002_")

        with open(filepath) as f:
            data = json.load(f)

        assert data["result"] == "refused"


def test_save_to_file_markdown(trace_builder):
    """Test saving trace to Markdown file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        output_dir = Path(tmpdir)
        filepath = trace_builder.save_to_file(output_dir, format="markdown")

        assert filepath.exists()
        assert filepath.suffix == ".md"
        assert "# Guardrail Trace" in filepath.read_text()


def test_save_to_file_creates_directory(trace_builder):
    with tempfile.TemporaryDirectory() as tmpdir:
        output_dir = Path(tmpdir) / "nested" / "traces"
        filepath = trace_builder.save_to_file(output_dir)

        assert filepath.parent == output_dir
        assert filepath.exists()


def test_repeated_saves_do_not_overwrite(trace_builder):
    with tempfile.TemporaryDirectory() as tmpdir:
        output_dir = Path(tmpdir)
        first = trace_builder.save_to_file(output_dir, format="json")
        second = trace_builder.save_to_file(output_dir, format="json")

        assert first != second
        assert len(list(output_dir.glob("*.json"))) == 2


def test_save_to_file_invalid_format(trace_builder):
    """Test that invalid format raises error."""
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ValueError):
            trace_builder.save_to_file(Path(tmpdir), format="xml")


def test_load_trace_from_file(refusal_trace_builder):
    """Test loading trace from saved JSON file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        filepath = refusal_trace_builder.save_to_file(Path(tmpdir), format="json")

        loaded_trace = load_trace_from_file(filepath)

        assert loaded_trace.subject_id == "test_user_002"
        assert loaded_trace.result == "refused"
        assert loaded_trace.context.injuries == ["shoulder"]
        assert [v.code for v in loaded_trace.violations] == [
            "REST_TOO_SHORT",
            "EXERCISE_RESTRICTED_INJURY",
        ]


def test_load_trace_from_nonexistent_file():
    with pytest.raises(FileNotFoundError):
        load_trace_from_file(Path("nonexistent_trace.json"))


def test_load_trace_from_invalid_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        filepath = Path(tmpdir) / "broken.json"
        filepath.write_text("{\"check_name\": ")

        with pytest.raises(ValueError):
            load_trace_from_file(filepath)


def test_save_trace_from_check(context):
    """Test the convenience function used by the CLI and API."""
    check = check_workout_safety(
        {
            "exercises": [{
                "id": "squat",
                "name": "Squat",
                "muscle": "quadriceps",
                "sets": 4,
                "reps": 8,
                "weight_kg": 100,
                "rest_seconds": 120,
            }],
            "total_duration_minutes": 60,
        },
        context,
    )

    with tempfile.TemporaryDirectory() as tmpdir:
        filepath = save_trace_from_check(
            check, "workout", "user 42", Path(tmpdir), context=context, format="markdown"
        )

        assert filepath.name.startswith("trace_workout_user_42_")
        assert "APPROVED" in filepath.read_text()
