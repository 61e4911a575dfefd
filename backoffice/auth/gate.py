"""
Per-request authentication gate.

    no token            -> UNAUTHENTICATED
    bad/expired token   -> INVALID (invalid_session)
    unknown principal   -> INVALID (unknown_principal)
    inactive principal  -> INVALID (inactive_principal)
    otherwise           -> VALID, with a renewed token

Only the VALID path renews. The INVALID reason is for logs; clients see a
single "invalid" answer.
"""
import logging
from typing import Optional

from .stores import PrincipalStore
from .tokens import SessionIssuer
from .types import GateResult, GateState, InvalidReason

logger = logging.getLogger(__name__)


class AuthenticationGate:
    """Validates a presented session token and renews it on success."""

    def __init__(self, issuer: SessionIssuer, principals: PrincipalStore):
        self._issuer = issuer
        self._principals = principals

    def _invalid(self, reason: InvalidReason, subject_id: str = "") -> GateResult:
        suffix = f" for principal {subject_id}" if subject_id else ""
        logger.warning(f"Session rejected ({reason.value}){suffix}")
        return GateResult(state=GateState.INVALID, reason=reason)

    def authenticate(self, token: Optional[str]) -> GateResult:
        if not token:
            return GateResult(state=GateState.UNAUTHENTICATED)

        claims = self._issuer.validate(token)
        if claims is None:
            return self._invalid(InvalidReason.INVALID_SESSION)

        # StoreUnavailable propagates: a backend outage is not an invalid session
        principal = self._principals.find_by_id(claims.subject_id)
        if principal is None:
            return self._invalid(InvalidReason.UNKNOWN_PRINCIPAL, claims.subject_id)
        if not principal.active:
            return self._invalid(InvalidReason.INACTIVE_PRINCIPAL, claims.subject_id)

        renewed = self._issuer.renew(token)
        if renewed is None:
            # Expired between validation and renewal
            return self._invalid(InvalidReason.INVALID_SESSION, claims.subject_id)

        return GateResult(
            state=GateState.VALID,
            principal=principal,
            claims=claims,
            renewed=renewed,
        )
