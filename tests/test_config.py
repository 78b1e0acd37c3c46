"""
Tests for environment-driven settings.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from trainguard.config import Settings, get_engine, get_settings


@pytest.fixture(autouse=True)
def clear_caches():
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()


def test_defaults(monkeypatch):
    monkeypatch.delenv("TRAINGUARD_LOG_LEVEL", raising=False)
    monkeypatch.delenv("TRAINGUARD_LIMITS_FILE", raising=False)

    settings = Settings()

    assert settings.environment == "development"
    assert settings.log_level == "INFO"
    assert settings.limits_file is None
    assert settings.trace_dir == Path("guardrail_traces")
    assert settings.api_port == 8000


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("TRAINGUARD_LOG_LEVEL", "debug")
    monkeypatch.setenv("TRAINGUARD_API_PORT", "9001")
    monkeypatch.setenv("TRAINGUARD_CORS_ORIGINS", '["https://app.example.com"]')

    settings = get_settings()

    assert settings.log_level == "DEBUG"
    assert settings.api_port == 9001
    assert settings.cors_origins == ["https://app.example.com"]


def test_unknown_log_level_rejected(monkeypatch):
    monkeypatch.setenv("TRAINGUARD_LOG_LEVEL", "chatty")

    with pytest.raises(ValidationError):
        Settings()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_engine_uses_default_tables(monkeypatch):
    monkeypatch.delenv("TRAINGUARD_LIMITS_FILE", raising=False)

    engine = get_engine()

    assert engine.limits.absolute.MAX_WEIGHT_KG == 500
    assert get_engine() is engine


def test_engine_loads_limits_file(monkeypatch, tmp_path):
    policy_path = tmp_path / "policy.json"
    policy_path.write_text(json.dumps({"absolute": {"MAX_WEIGHT_KG": 250}}))
    monkeypatch.setenv("TRAINGUARD_LIMITS_FILE", str(policy_path))

    assert get_engine().limits.absolute.MAX_WEIGHT_KG == 250


def test_engine_missing_limits_file(monkeypatch, tmp_path):
    monkeypatch.setenv("TRAINGUARD_LIMITS_FILE", str(tmp_path / "missing.json"))

    with pytest.raises(FileNotFoundError):
        get_engine()
