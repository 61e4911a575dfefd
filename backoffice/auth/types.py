"""
Auth domain types - no dependencies on other auth modules.

Tagged results (Outcome, GateState) are returned instead of booleans so
callers must branch on every case: enrollment vs. login, wrong code vs.
missing credential, backend failure vs. rejection.
"""
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Principal:
    """Admin identity from the principal store (immutable)."""
    id: str
    role: str
    active: bool
    username: str = ""
    email: str = ""
    last_login: Optional[datetime] = None


@dataclass(frozen=True)
class MfaCredential:
    """Stored MFA credential for one principal.

    ``secret`` is the base32 shared secret (decrypted). ``backup_codes`` holds
    digests of the unused recovery codes, never the codes themselves.
    """
    principal_id: str
    secret: str
    enabled: bool = False
    backup_codes: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ProvisioningBundle:
    """One-time enrollment material. Never persisted, never rebuilt."""
    secret: str
    enrollment_uri: str
    backup_codes: tuple[str, ...]

    def __repr__(self) -> str:
        return f"ProvisioningBundle(backup_codes={len(self.backup_codes)})"


@dataclass(frozen=True)
class SessionClaims:
    """Decoded session token claims (immutable)."""
    subject_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    jti: str = ""


@dataclass(frozen=True)
class SessionToken:
    """Signed session token plus the claims it carries."""
    value: str
    claims: SessionClaims

    def __repr__(self) -> str:
        return f"SessionToken(sub={self.claims.subject_id!r}, exp={self.claims.expires_at.isoformat()})"


class Outcome(str, Enum):
    ENROLLED = "enrolled"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NOT_PROVISIONED = "not_provisioned"
    ENROLLMENT_PENDING = "enrollment_pending"
    MALFORMED_INPUT = "malformed_input"


@dataclass(frozen=True)
class VerificationResult:
    """Result of an MFA check against a principal's credential."""
    outcome: Outcome
    principal_id: str

    @property
    def ok(self) -> bool:
        return self.outcome in (Outcome.ENROLLED, Outcome.ACCEPTED)


class GateState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    INVALID = "invalid"
    VALID = "valid"


class InvalidReason(str, Enum):
    """Internal detail for INVALID gate results. Never sent to clients."""
    INVALID_SESSION = "invalid_session"
    INACTIVE_PRINCIPAL = "inactive_principal"
    UNKNOWN_PRINCIPAL = "unknown_principal"


@dataclass(frozen=True)
class GateResult:
    """Outcome of authenticating one request."""
    state: GateState
    principal: Optional[Principal] = None
    claims: Optional[SessionClaims] = None
    renewed: Optional[SessionToken] = None
    reason: Optional[InvalidReason] = None

    @property
    def ok(self) -> bool:
        return self.state is GateState.VALID


def normalize_backup_code(code: str) -> str:
    """Canonical form of a backup code: surrounding whitespace removed, uppercased."""
    return code.strip().upper()


def digest_backup_code(code: str) -> str:
    """SHA-256 hex digest of the normalized backup code (the stored form)."""
    return hashlib.sha256(normalize_backup_code(code).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class MfaStatus:
    """Enrollment state of a principal. Carries no secret material."""
    is_enabled: bool
    is_pending: bool
    backup_codes_remaining: int
