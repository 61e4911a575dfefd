"""
At-rest encryption of TOTP secrets (Fernet).
"""
import base64
import hashlib
import logging

from cryptography.fernet import Fernet, InvalidToken

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


def derive_fernet_key(encryption_key: str, signing_key: str) -> bytes:
    """Resolve the Fernet key for MFA secrets.

    Priority:
    1. MFA_ENCRYPTION_KEY (must be a valid Fernet key)
    2. Derived from the session signing key (works but logged as warning)
    """
    if encryption_key:
        key = encryption_key.encode()
        try:
            Fernet(key)
            return key
        except ValueError:
            logger.warning("MFA_ENCRYPTION_KEY is not a valid Fernet key, ignoring it")

    logger.warning(
        "MFA_ENCRYPTION_KEY not set - deriving from session signing key. "
        "Set MFA_ENCRYPTION_KEY for production."
    )
    derived = hashlib.sha256(signing_key.encode()).digest()
    return base64.urlsafe_b64encode(derived)


class SecretCipher:
    """Encrypts and decrypts stored TOTP secrets."""

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    def encrypt(self, secret: str) -> str:
        return self._fernet.encrypt(secret.encode()).decode()

    def decrypt(self, token: str) -> str:
        """Decrypt a stored secret.

        A secret that no longer decrypts (rotated or lost key) is a backend
        fault, not a wrong code, so it surfaces as StoreUnavailable.
        """
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken as e:
            logger.error("Stored MFA secret could not be decrypted (encryption key mismatch)")
            raise StoreUnavailable() from e
