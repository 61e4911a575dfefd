"""
MFA code verification: enrollment confirmation, login codes and backup codes.

Every entry point returns a VerificationResult; none raises for a wrong or
malformed code. Store failures propagate as StoreUnavailable.

Check order for each call: credential state first (NOT_PROVISIONED /
ENROLLMENT_PENDING), then input shape (MALFORMED_INPUT, no HMAC work),
then the code itself (ACCEPTED / ENROLLED / REJECTED).
"""
import logging
import string
import time
from typing import Callable, Optional

from .config import MfaConfig
from .provisioning import BACKUP_CODE_ALPHABET
from .stores import CredentialStore
from .totp import TotpEngine
from .types import Outcome, VerificationResult, digest_backup_code, normalize_backup_code

logger = logging.getLogger(__name__)

# Longest raw input worth looking at (spaces and dashes allowed between digits)
_MAX_RAW_CODE_LENGTH = 32


class MfaVerifier:
    """Decides enrollment and login outcomes against a stored credential."""

    def __init__(
        self,
        store: CredentialStore,
        engine: TotpEngine,
        config: MfaConfig,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._engine = engine
        self._config = config
        self._clock = clock

    # ----- input shape ---------------------------------------------------------

    def normalize_totp_code(self, candidate) -> Optional[str]:
        """Digits of ``candidate`` if they form exactly one code, else None."""
        if not isinstance(candidate, str) or len(candidate) > _MAX_RAW_CODE_LENGTH:
            return None
        digits = "".join(ch for ch in candidate if ch in string.digits)
        if len(digits) != self._config.digits:
            return None
        return digits

    def _is_backup_code_shape(self, code) -> bool:
        if not isinstance(code, str):
            return False
        normalized = normalize_backup_code(code)
        return len(normalized) == self._config.backup_code_length and all(
            ch in BACKUP_CODE_ALPHABET for ch in normalized
        )

    def _current_step(self, at: Optional[float]) -> int:
        return self._engine.time_step(self._clock() if at is None else at)

    def _result(self, outcome: Outcome, principal_id: str, action: str) -> VerificationResult:
        log = logger.info if outcome in (Outcome.ENROLLED, Outcome.ACCEPTED) else logger.warning
        log(f"{action} for principal {principal_id}: {outcome.value}")
        return VerificationResult(outcome=outcome, principal_id=principal_id)

    # ----- entry points --------------------------------------------------------

    def confirm_enrollment(
        self, principal_id: str, candidate_code, at: Optional[float] = None
    ) -> VerificationResult:
        """Activate a pending credential with a first valid TOTP code.

        A missing or already-enabled credential is NOT_PROVISIONED and nothing
        is written.
        """
        action = "MFA enrollment confirmation"
        credential = self._store.get(principal_id)
        if credential is None or credential.enabled:
            return self._result(Outcome.NOT_PROVISIONED, principal_id, action)

        code = self.normalize_totp_code(candidate_code)
        if code is None:
            return self._result(Outcome.MALFORMED_INPUT, principal_id, action)

        if not self._engine.matches(
            credential.secret, code, self._current_step(at), self._config.valid_window
        ):
            return self._result(Outcome.REJECTED, principal_id, action)

        if not self._store.enable(principal_id):
            # Confirmed or re-provisioned by a concurrent request in between
            return self._result(Outcome.NOT_PROVISIONED, principal_id, action)
        return self._result(Outcome.ENROLLED, principal_id, action)

    def verify_login(
        self, principal_id: str, candidate_code, at: Optional[float] = None
    ) -> VerificationResult:
        """Check a TOTP code for an enabled credential. Never writes."""
        action = "MFA login verification"
        credential = self._store.get(principal_id)
        if credential is None:
            return self._result(Outcome.NOT_PROVISIONED, principal_id, action)
        if not credential.enabled:
            return self._result(Outcome.ENROLLMENT_PENDING, principal_id, action)

        code = self.normalize_totp_code(candidate_code)
        if code is None:
            return self._result(Outcome.MALFORMED_INPUT, principal_id, action)

        if self._engine.matches(
            credential.secret, code, self._current_step(at), self._config.valid_window
        ):
            return self._result(Outcome.ACCEPTED, principal_id, action)
        return self._result(Outcome.REJECTED, principal_id, action)

    def verify_backup_code(self, principal_id: str, code) -> VerificationResult:
        """Consume a backup code. Removal and membership check are one store operation."""
        action = "MFA backup code"
        credential = self._store.get(principal_id)
        if credential is None:
            return self._result(Outcome.NOT_PROVISIONED, principal_id, action)
        if not credential.enabled:
            return self._result(Outcome.ENROLLMENT_PENDING, principal_id, action)

        if not self._is_backup_code_shape(code):
            return self._result(Outcome.MALFORMED_INPUT, principal_id, action)

        if self._store.try_consume_backup_code(principal_id, digest_backup_code(code)):
            return self._result(Outcome.ACCEPTED, principal_id, action)
        return self._result(Outcome.REJECTED, principal_id, action)
