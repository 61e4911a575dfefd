"""
Pydantic schemas for request validation.

These schemas provide centralized validation with clear error messages,
replacing scattered manual validation throughout route handlers.
"""

from backoffice.schemas.auth import (
    LoginRequest,
    MfaTokenRequest,
    MfaConfirmRequest,
    SessionLoginRequest,
)

__all__ = [
    "LoginRequest",
    "MfaTokenRequest",
    "MfaConfirmRequest",
    "SessionLoginRequest",
]
