"""
Authentication and MFA request schemas.

Only transport-level checks live here (types, presence, length caps). The
shape of a TOTP or backup code is judged by MfaVerifier, which answers
MALFORMED_INPUT without doing any HMAC work.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class LoginRequest(BaseModel):
    """Admin login request (username or email)."""
    username: str = Field(..., min_length=1, max_length=254, description="Username or email")
    password: str = Field(..., min_length=1, max_length=200, description="Password")

    @field_validator('username')
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class MfaTokenRequest(BaseModel):
    """Request carrying the pending-MFA challenge token."""
    mfa_token: str = Field(..., min_length=1, max_length=2048, description="Challenge token from login")


class MfaConfirmRequest(MfaTokenRequest):
    """Confirm MFA enrollment with the first TOTP code."""
    code: str = Field(..., max_length=32, description="6-digit TOTP code")


class SessionLoginRequest(MfaTokenRequest):
    """Complete login with a TOTP code or a backup code (exactly one)."""
    code: Optional[str] = Field(None, max_length=32, description="6-digit TOTP code")
    backup_code: Optional[str] = Field(None, max_length=64, description="Single-use backup code")

    @model_validator(mode='after')
    def exactly_one_factor(self):
        if (self.code is None) == (self.backup_code is None):
            raise ValueError('Provide exactly one of code or backup_code')
        return self
