"""
Central configuration using Pydantic BaseSettings.

Validates all env vars at startup (fail-fast). Production refuses to start
without JWT_SECRET; TESTING mode bypasses the check.

Usage:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.auth.session_ttl_minutes)

Lazy initialization: get_settings() creates the singleton on first call.
Tests can reset via get_settings.cache_clear().
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


def _is_testing() -> bool:
    """Check if running in test mode."""
    return (
        os.getenv("TESTING", "").lower() in ("true", "1")
        or os.getenv("FLASK_ENV", "") == "testing"
    )


# =============================================================================
# Nested Settings Groups
# =============================================================================


class AuthSettings(BaseSettings):
    """Session token configuration."""

    model_config = {"env_prefix": "", "extra": "ignore"}

    jwt_algorithm: str = "HS256"

    # Sliding window: every authenticated request pushes expiry this far out
    session_ttl_minutes: int = 30

    # Pending-MFA challenge token (between password check and code entry)
    mfa_token_expiration_minutes: int = 5

    # Response header carrying the renewed session token
    token_header: str = "x-token"


class MfaSettings(BaseSettings):
    """TOTP enrollment and verification configuration."""

    model_config = {"env_prefix": "MFA_", "extra": "ignore"}

    issuer_name: str = "SNAP Marketplace"
    valid_window: int = 3
    period: int = 30
    digits: int = 6

    backup_code_count: int = 8
    backup_code_length: int = 10


class DatabaseSettings(BaseSettings):
    """Database configuration."""

    model_config = {"env_prefix": "", "extra": "ignore"}

    database_url: Optional[str] = None  # PostgreSQL URL (optional)

    @property
    def sqlite_path(self) -> Path:
        """Default SQLite path for the back office database."""
        return Path(__file__).parent.parent / "data" / "backoffice.db"


# =============================================================================
# Root Settings
# =============================================================================


class AppSettings(BaseSettings):
    """Root application settings composing all sub-settings."""

    model_config = {"env_prefix": "", "extra": "ignore", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    log_file: str = ""

    # Server
    cors_origins: str = "http://localhost:3000"

    # Nested groups (initialized separately to support env_prefix)
    auth: AuthSettings = None  # type: ignore[assignment]
    mfa: MfaSettings = None  # type: ignore[assignment]
    database: DatabaseSettings = None  # type: ignore[assignment]

    @model_validator(mode="before")
    @classmethod
    def _init_nested(cls, values):
        """Initialize nested settings from environment."""
        if values.get("auth") is None:
            values["auth"] = AuthSettings()
        if values.get("mfa") is None:
            values["mfa"] = MfaSettings()
        if values.get("database") is None:
            values["database"] = DatabaseSettings()
        return values

    @model_validator(mode="after")
    def _validate_required_secrets(self):
        """Require JWT_SECRET in production; bypass in TESTING mode or when Vault serves it."""
        if _is_testing() or os.getenv("USE_VAULT", "false").lower() == "true":
            return self

        if not os.getenv("JWT_SECRET"):
            raise ValueError(
                "JWT_SECRET env var is required. "
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        return self

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list (comma-separated in the environment)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """
    Get the application settings singleton.

    Lazy-initialized on first call. Validates all env vars (fail-fast).
    Tests can reset via: get_settings.cache_clear()
    """
    return AppSettings()
