"""
Session token creation, validation and sliding renewal.

Handles:
- Session token issue (JWT: sub, role, iat, exp, jti, type=session)
- Validation against the issuer's own clock
- Renewal, which re-validates before minting a replacement
- Signing key resolution at startup
"""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

import jwt
from flask import request

from .config import SessionConfig
from .errors import SigningKeyUnavailable
from .types import Principal, SessionClaims, SessionToken

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"


class SigningKeyProvider(Protocol):
    def get_session_signing_key(self) -> str: ...


def resolve_signing_key(provider: SigningKeyProvider) -> str:
    """Fetch the signing key once at startup.

    Raises:
        SigningKeyUnavailable: the provider has no usable key
    """
    try:
        key = provider.get_session_signing_key()
    except ValueError as e:
        raise SigningKeyUnavailable(str(e)) from e
    if not key:
        raise SigningKeyUnavailable("Session signing key is empty")
    return key


def decode_signed(token: str, config: SessionConfig, expected_type: str, now: float) -> Optional[dict]:
    """Verify signature, token type and expiry against ``now``.

    Expiry is checked here rather than by PyJWT so the injected clock is
    the single source of time.
    """
    if not isinstance(token, str) or not token:
        return None
    try:
        payload = jwt.decode(
            token,
            config.signing_key,
            algorithms=[config.algorithm],
            options={
                "verify_exp": False,
                "verify_iat": False,
                "require": ["sub", "iat", "exp", "jti"],
            },
        )
    except jwt.InvalidTokenError:
        return None

    if payload.get("type") != expected_type:
        return None
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)) or exp <= now:
        return None
    return payload


class SessionIssuer:
    """Mints and renews signed session tokens with a fixed TTL."""

    def __init__(self, config: SessionConfig, clock: Callable[[], float] = time.time):
        self._config = config
        self._clock = clock

    @property
    def config(self) -> SessionConfig:
        return self._config

    def _mint(self, subject_id: str, role: str) -> SessionToken:
        # Whole seconds: JWT timestamps are integers, so claims round-trip exactly
        issued_at = datetime.fromtimestamp(int(self._clock()), tz=timezone.utc)
        claims = SessionClaims(
            subject_id=subject_id,
            role=role,
            issued_at=issued_at,
            expires_at=issued_at + self._config.ttl,
            jti=str(uuid.uuid4()),
        )
        payload = {
            "sub": claims.subject_id,
            "role": claims.role,
            "jti": claims.jti,
            "type": SESSION_TOKEN_TYPE,
            "iat": claims.issued_at,
            "exp": claims.expires_at,
        }
        value = jwt.encode(payload, self._config.signing_key, algorithm=self._config.algorithm)
        return SessionToken(value=value, claims=claims)

    def issue(self, principal: Principal) -> SessionToken:
        """Fresh session token for a principal that just passed MFA."""
        token = self._mint(principal.id, principal.role)
        logger.info(f"Issued session for principal {principal.id}")
        return token

    def validate(self, token: str) -> Optional[SessionClaims]:
        """Claims of a correctly signed, unexpired session token, else None."""
        payload = decode_signed(token, self._config, SESSION_TOKEN_TYPE, self._clock())
        if payload is None:
            return None
        role = payload.get("role")
        if not isinstance(role, str):
            return None
        return SessionClaims(
            subject_id=str(payload["sub"]),
            role=role,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            jti=str(payload["jti"]),
        )

    def renew(self, token: str) -> Optional[SessionToken]:
        """Replacement token with the same subject and role.

        The presented token is validated first; an invalid or expired token
        is never renewed. The old token stays valid until its own expiry.
        """
        claims = self.validate(token)
        if claims is None:
            return None
        return self._mint(claims.subject_id, claims.role)


def get_token_from_request() -> str | None:
    """Extract session token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None
