"""
Back office authentication: TOTP MFA and sliding session tokens.

Public API:
- Decorators: session_required
- Services: AuthServices, build_auth_services, get_auth_services
- Core: TotpEngine, SecretProvisioner, MfaVerifier, SessionIssuer, AuthenticationGate
- Types: Principal, MfaCredential, ProvisioningBundle, SessionToken, Outcome, GateState

Import Rules:
- External callers: Use `from backoffice.auth import X` (this facade)
- Internal auth modules: Use `from .submodule import X` (direct imports)
"""

# =============================================================================
# Decorators
# =============================================================================
from .decorators import session_required

# =============================================================================
# Services
# =============================================================================
from .services import AuthServices, build_auth_services, get_auth_services

# =============================================================================
# MFA / Session core
# =============================================================================
from .totp import TotpEngine
from .provisioning import SecretProvisioner, render_qr_data_uri, build_enrollment_uri
from .verifier import MfaVerifier
from .tokens import SessionIssuer, get_token_from_request, resolve_signing_key
from .mfa import MfaChallenge
from .gate import AuthenticationGate
from .identity import authenticate_principal
from .passwords import hash_password, verify_password

# =============================================================================
# Types & errors
# =============================================================================
from .types import (
    Principal,
    MfaCredential,
    ProvisioningBundle,
    SessionClaims,
    SessionToken,
    Outcome,
    VerificationResult,
    GateState,
    GateResult,
    InvalidReason,
)
from .errors import StoreUnavailable, SigningKeyUnavailable
from .config import SessionConfig, MfaConfig
