"""
Centralized settings using Pydantic BaseSettings.

All environment variables are prefixed with TRAINGUARD_ and may also come
from a local .env file.

Usage:
    from trainguard.config import get_settings, get_engine

    settings = get_settings()
    engine = get_engine()  # built once from settings.limits_file
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trainguard.guardrails import SafetyGuardrailEngine

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRAINGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    limits_file: Optional[Path] = Field(
        default=None,
        description="JSON policy overriding the built-in limit tables",
    )
    trace_dir: Path = Field(
        default=Path("guardrail_traces"),
        description="Where CLI and API write guardrail traces",
    )

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    For testing, clear the cache with get_settings.cache_clear().
    """
    return Settings()


@lru_cache()
def get_engine() -> SafetyGuardrailEngine:
    """
    Build the process-wide guardrail engine once.

    Raises:
        FileNotFoundError: If the configured limits file doesn't exist
        ValueError: If the configured limits file is invalid
    """
    settings = get_settings()
    if settings.limits_file is None:
        return SafetyGuardrailEngine()
    return SafetyGuardrailEngine.from_file(settings.limits_file)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for CLI and API entry points."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format=LOG_FORMAT,
    )
