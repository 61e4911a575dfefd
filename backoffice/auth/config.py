"""
Auth configuration objects - no dependencies on other auth modules.

Values are sourced from config.settings (Pydantic BaseSettings) once at
startup and passed into constructors, so tests can build issuers and
verifiers with their own keys and TTLs side by side.
"""
from dataclasses import dataclass
from datetime import timedelta

from config.settings import AppSettings


@dataclass(frozen=True)
class SessionConfig:
    """Session token signing and lifetime."""
    signing_key: str
    algorithm: str = "HS256"
    ttl: timedelta = timedelta(minutes=30)
    challenge_ttl: timedelta = timedelta(minutes=5)
    token_header: str = "x-token"

    def __repr__(self) -> str:
        return f"SessionConfig(algorithm={self.algorithm!r}, ttl={self.ttl}, challenge_ttl={self.challenge_ttl})"

    @classmethod
    def from_settings(cls, settings: AppSettings, signing_key: str) -> "SessionConfig":
        auth = settings.auth
        return cls(
            signing_key=signing_key,
            algorithm=auth.jwt_algorithm,
            ttl=timedelta(minutes=auth.session_ttl_minutes),
            challenge_ttl=timedelta(minutes=auth.mfa_token_expiration_minutes),
            token_header=auth.token_header,
        )


@dataclass(frozen=True)
class MfaConfig:
    """TOTP parameters and backup code shape."""
    issuer_name: str = "SNAP Marketplace"
    period: int = 30
    digits: int = 6
    valid_window: int = 3
    backup_code_count: int = 8
    backup_code_length: int = 10

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "MfaConfig":
        mfa = settings.mfa
        return cls(
            issuer_name=mfa.issuer_name,
            period=mfa.period,
            digits=mfa.digits,
            valid_window=mfa.valid_window,
            backup_code_count=mfa.backup_code_count,
            backup_code_length=mfa.backup_code_length,
        )
