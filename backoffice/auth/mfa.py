"""
Pending-MFA challenge tokens for the two-step login flow:

1. Admin authenticates with password -> challenge token returned
2. Admin provisions/confirms or verifies a code with the challenge token
   -> session token returned

The challenge token binds step 2 to the principal that passed step 1. It is
signed with the session key but carries type=mfa_pending, so it is never
accepted as a session, and a session token is never accepted here.

TOTP enrollment and verification live in provisioning.py / verifier.py.
"""
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

import jwt

from .config import SessionConfig
from .tokens import decode_signed

logger = logging.getLogger(__name__)

MFA_TOKEN_TYPE = "mfa_pending"


class MfaChallenge:
    """Short-lived challenge tokens (default 5 minutes)."""

    def __init__(self, config: SessionConfig, clock: Callable[[], float] = time.time):
        self._config = config
        self._clock = clock

    def create(self, principal_id: str) -> str:
        """Create the challenge token handed out after the password check."""
        now = datetime.fromtimestamp(int(self._clock()), tz=timezone.utc)
        payload = {
            "sub": principal_id,
            "jti": str(uuid.uuid4()),
            "type": MFA_TOKEN_TYPE,
            "iat": now,
            "exp": now + self._config.challenge_ttl,
        }
        return jwt.encode(payload, self._config.signing_key, algorithm=self._config.algorithm)

    def verify(self, token: str) -> Optional[str]:
        """Principal id of a valid, unexpired challenge token, else None."""
        payload = decode_signed(token, self._config, MFA_TOKEN_TYPE, self._clock())
        if payload is None:
            logger.debug("Rejected invalid or expired MFA challenge token")
            return None
        return str(payload["sub"])
