"""
MFA enrollment: secret generation, backup codes, otpauth URI and QR rendering.

The bundle returned by provision() is the only place the plaintext secret and
backup codes ever leave this process. Nothing here logs them.
"""
import base64
import logging
import secrets
import string
from io import BytesIO
from urllib.parse import quote, urlencode

import pyotp
import qrcode

from .config import MfaConfig
from .stores import CredentialStore
from .types import MfaCredential, ProvisioningBundle, digest_backup_code

logger = logging.getLogger(__name__)

BACKUP_CODE_ALPHABET = string.ascii_uppercase + string.digits


def build_enrollment_uri(secret: str, account_label: str, config: MfaConfig) -> str:
    """otpauth://totp URI with every parameter spelled out.

    Algorithm, digits and period are always present, even at their defaults,
    so authenticator apps never have to guess.
    """
    issuer = config.issuer_name
    label = quote(f"{issuer}:{account_label}", safe="@:")
    params = urlencode(
        {
            "secret": secret,
            "issuer": issuer,
            "algorithm": "SHA1",
            "digits": config.digits,
            "period": config.period,
        },
        quote_via=quote,
    )
    return f"otpauth://totp/{label}?{params}"


def generate_backup_codes(count: int, length: int) -> tuple[str, ...]:
    """``count`` distinct random codes of ``length`` uppercase alphanumerics."""
    codes: list[str] = []
    while len(codes) < count:
        code = "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(length))
        if code not in codes:
            codes.append(code)
    return tuple(codes)


def render_qr_data_uri(uri: str) -> str:
    """Render ``uri`` as a PNG QR code data URI for the enrollment screen."""
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    qr_base64 = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{qr_base64}"


class SecretProvisioner:
    """Creates (or replaces) a principal's pending MFA credential."""

    def __init__(self, store: CredentialStore, config: MfaConfig):
        self._store = store
        self._config = config

    def provision(self, principal_id: str, display_label: str) -> ProvisioningBundle:
        """Generate a fresh secret and backup codes and persist them disabled.

        Any earlier unconfirmed credential for the principal is overwritten,
        so its secret and every one of its backup codes stop working.
        """
        secret = pyotp.random_base32()  # 32 base32 chars = 160 bits
        backup_codes = generate_backup_codes(
            self._config.backup_code_count, self._config.backup_code_length
        )

        self._store.put(
            principal_id,
            MfaCredential(
                principal_id=principal_id,
                secret=secret,
                enabled=False,
                backup_codes=frozenset(digest_backup_code(c) for c in backup_codes),
            ),
        )
        logger.info(f"Provisioned pending MFA credential for principal {principal_id}")

        return ProvisioningBundle(
            secret=secret,
            enrollment_uri=build_enrollment_uri(secret, display_label, self._config),
            backup_codes=backup_codes,
        )
