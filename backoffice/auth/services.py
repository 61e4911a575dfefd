"""
Auth service container, built once by the app factory.

Everything the MFA and session flow needs is constructed here from explicit
configuration objects and stored on ``app.extensions["auth"]``. Tests build
their own container with a fake clock and a throwaway database.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from flask import current_app

from config.settings import AppSettings
from config.vault_client import get_secrets_manager
from core.db import DatabaseManager
from .config import MfaConfig, SessionConfig
from .crypto import SecretCipher, derive_fernet_key
from .gate import AuthenticationGate
from .mfa import MfaChallenge
from .provisioning import SecretProvisioner
from .stores import SqlCredentialStore, SqlPrincipalStore
from .tokens import SessionIssuer, SigningKeyProvider, resolve_signing_key
from .totp import TotpEngine
from .verifier import MfaVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthServices:
    session_config: SessionConfig
    mfa_config: MfaConfig
    principals: SqlPrincipalStore
    credentials: SqlCredentialStore
    engine: TotpEngine
    provisioner: SecretProvisioner
    verifier: MfaVerifier
    issuer: SessionIssuer
    challenge: MfaChallenge
    gate: AuthenticationGate


def build_auth_services(
    settings: AppSettings,
    db: DatabaseManager,
    key_provider: Optional[SigningKeyProvider] = None,
    clock: Callable[[], float] = time.time,
) -> AuthServices:
    """Wire stores, verifier, issuer and gate.

    Raises:
        SigningKeyUnavailable: no signing key; the app must not start
    """
    key_provider = key_provider or get_secrets_manager()
    signing_key = resolve_signing_key(key_provider)

    encryption_key = ""
    if hasattr(key_provider, "get_mfa_encryption_key"):
        encryption_key = key_provider.get_mfa_encryption_key()
    cipher = SecretCipher(derive_fernet_key(encryption_key, signing_key))

    session_config = SessionConfig.from_settings(settings, signing_key)
    mfa_config = MfaConfig.from_settings(settings)

    principals = SqlPrincipalStore(db)
    credentials = SqlCredentialStore(db, cipher)
    engine = TotpEngine(period=mfa_config.period, digits=mfa_config.digits)
    issuer = SessionIssuer(session_config, clock=clock)

    logger.info(f"Auth services ready: {session_config!r}")
    return AuthServices(
        session_config=session_config,
        mfa_config=mfa_config,
        principals=principals,
        credentials=credentials,
        engine=engine,
        provisioner=SecretProvisioner(credentials, mfa_config),
        verifier=MfaVerifier(credentials, engine, mfa_config, clock=clock),
        issuer=issuer,
        challenge=MfaChallenge(session_config, clock=clock),
        gate=AuthenticationGate(issuer, principals),
    )


def get_auth_services() -> AuthServices:
    """Services of the current Flask app."""
    return current_app.extensions["auth"]
