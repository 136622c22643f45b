"""
NoteMate Backend — Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST set ADMIN_API_KEYS, otherwise every
    admin reporting route answers 401.
    """

    # ── Analytics Snapshot ────────────────────────────────────────────────
    # What: JSON file holding the last checkpoint of the aggregate state
    # Why relative: Works in both Docker (mounted volume) and local development
    analytics_file: str = Field(default="./data/analytics.json")

    # What: Persist the aggregate every N recorded events
    # Trade-off: Lower = less data lost on crash, more disk writes
    analytics_checkpoint_interval: int = Field(default=10, ge=1, le=10_000)

    # What: Upper bound (seconds) on a single checkpoint write
    # The request path never waits longer than this on disk I/O
    snapshot_write_timeout: float = Field(default=5.0, gt=0, le=60)

    # What: Tenacity retry settings for transient snapshot write failures
    snapshot_retry_attempts: int = Field(default=2, ge=1, le=5)
    snapshot_retry_min_wait: float = Field(default=0.1, ge=0, le=5)
    snapshot_retry_max_wait: float = Field(default=1.0, ge=0, le=10)

    # ── Admin Access ──────────────────────────────────────────────────────
    # What: Static list of admin keys accepted in the X-Admin-Key header
    # Format: Comma-separated values (parsed by the property below)
    admin_api_keys: str = Field(default="")

    @property
    def admin_api_keys_list(self) -> List[str]:
        """Splits comma-separated admin keys into a list, dropping blanks."""
        return [key.strip() for key in self.admin_api_keys.split(",") if key.strip()]

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """
        What: Splits comma-separated CORS origins into a list.
        Why property: CORS middleware expects a list, but env vars are strings.
        """
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5000, ge=1024, le=65535)

    # What: Controls verbosity of application logging
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-IP sliding window rate limit on /api/ routes
    # Default mirrors the public API budget: 100 requests per 15 minutes
    rate_limit_requests: int = Field(default=100, ge=10, le=10000)
    rate_limit_window: int = Field(default=900, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Checks each required field and raises ValueError with guidance.
        """
        errors = []
        if not self.admin_api_keys_list:
            errors.append(
                "ADMIN_API_KEYS is not set. Admin analytics routes will reject every request."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — imported throughout the application
settings = Settings()
