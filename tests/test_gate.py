"""
Tests for the composition helpers used by the UI and AI layers.
"""

import json
from pathlib import Path

import pytest

from trainguard.abuse import InMemoryAbuseGuard
from trainguard.gate import (
    AIResponse,
    check_and_record_ai_request,
    validate_and_sanitize_set_log,
    validate_workout_with_safety,
)
from trainguard.schemas import AbuseViolationType


class FakeClock:
    def __init__(self):
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def guard():
    return InMemoryAbuseGuard(clock=FakeClock())


def _load(name: str) -> dict:
    with open(Path("tests/fixtures") / name) as f:
        return json.load(f)


# Set Logs

def test_valid_set_log_returns_sanitized_data():
    outcome = validate_and_sanitize_set_log(_load("set_log_valid.json"))

    assert outcome.valid is True
    assert outcome.errors == []
    assert outcome.sanitized["weight"] == 80.25


def test_invalid_set_log_hides_sanitized_data():
    outcome = validate_and_sanitize_set_log(_load("set_log_invalid.json"))

    assert outcome.valid is False
    assert outcome.sanitized is None
    assert len(outcome.errors) == 3
    assert "Reps must be between 1 and 100" in outcome.errors


# Workouts

def test_workout_with_safety_splits_messages():
    outcome = validate_workout_with_safety(
        _load("workout_unsafe.json"), _load("context_shoulder_injury.json")
    )

    assert outcome.valid is False
    assert len(outcome.errors) == 3
    assert outcome.warnings == []


def test_workout_with_safety_warnings_only():
    workout = _load("workout_valid.json")
    workout["exercises"][0]["rest_seconds"] = 30

    outcome = validate_workout_with_safety(workout, _load("context_intermediate.json"))

    assert outcome.valid is True
    assert outcome.errors == []
    assert outcome.warnings == ["Minimum rest is 60s for this fitness level"]


# AI Requests

def test_successful_ai_request_is_recorded(guard):
    outcome = check_and_record_ai_request(
        guard,
        "user_1",
        "Plan my week",
        "workout_generation",
        lambda: AIResponse(success=True, tokens=500, cost_usd=0.002, data={"plan": "ok"}),
    )

    assert outcome.allowed is True
    assert outcome.success is True
    assert outcome.data == {"plan": "ok"}
    history = guard.get_history("user_1")
    assert history.requests_today == 1
    assert history.total_tokens_today == 500


def test_refused_request_skips_ai_call(guard):
    for _ in range(5):
        guard.record_violation("user_1", AbuseViolationType.CONTENT_VIOLATION, "bad")
    calls = []

    outcome = check_and_record_ai_request(
        guard, "user_1", "hi", "chat", lambda: calls.append(1) or AIResponse(success=True)
    )

    assert outcome.allowed is False
    assert outcome.reason
    assert calls == []


def test_raising_ai_call_records_failure(guard):
    def failing_call():
        raise RuntimeError("upstream timeout")

    outcome = check_and_record_ai_request(guard, "user_1", "hi", "chat", failing_call)

    assert outcome.allowed is True
    assert outcome.success is False
    assert outcome.reason == "upstream timeout"
    assert guard.get_history("user_1").consecutive_failures == 1


def test_unsuccessful_ai_response_records_failure(guard):
    outcome = check_and_record_ai_request(
        guard, "user_1", "hi", "chat", lambda: AIResponse(success=False)
    )

    assert outcome.success is False
    assert outcome.reason == "AI request failed"
    assert guard.get_history("user_1").consecutive_failures == 1
