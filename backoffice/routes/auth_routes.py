"""
Authentication, MFA enrollment and session login endpoints.

Flow:
    POST /api/auth/login        password check -> challenge token
                                (+ provisioning bundle when MFA is not active)
    POST /api/mfa/provision     regenerate a not-yet-confirmed enrollment
    POST /api/mfa/confirm       first TOTP code -> MFA active + session token
    POST /api/session/login     TOTP or backup code -> session token
    GET  /api/auth/me           current admin (session required)
    GET  /api/mfa/status        enrollment state (session required)

Wrong code, unknown backup code and missing credential all answer the same
401 so account state cannot be enumerated.
"""

import logging
from flask import Blueprint, jsonify, request, g
from pydantic import ValidationError as PydanticValidationError

from backoffice.auth import (
    Outcome,
    Principal,
    VerificationResult,
    authenticate_principal,
    get_auth_services,
    render_qr_data_uri,
    session_required,
)
from backoffice.schemas import (
    LoginRequest,
    MfaConfirmRequest,
    MfaTokenRequest,
    SessionLoginRequest,
)
from core.errors import AuthenticationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

GENERIC_AUTH_FAILURE = "Authentication failed"

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
mfa_bp = Blueprint('mfa', __name__, url_prefix='/api/mfa')
session_bp = Blueprint('session', __name__, url_prefix='/api/session')


# =============================================================================
# Helpers
# =============================================================================

def _parse(model):
    """Validate the JSON body against a pydantic model (400 on failure)."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        raise ValidationError("No data provided")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "body"
        raise ValidationError(f"Invalid {field}: {first.get('msg', 'invalid value')}")


def _challenge_principal(mfa_token: str) -> Principal:
    """Principal bound to a pending-MFA challenge token."""
    services = get_auth_services()
    principal_id = services.challenge.verify(mfa_token)
    if principal_id is None:
        raise AuthenticationError("Invalid or expired MFA token")

    principal = services.principals.find_by_id(principal_id)
    if principal is None or not principal.active:
        raise AuthenticationError(GENERIC_AUTH_FAILURE)
    return principal


def _require_success(result: VerificationResult) -> None:
    if result.ok:
        return
    if result.outcome is Outcome.MALFORMED_INPUT:
        raise ValidationError("Invalid code format")
    raise AuthenticationError(GENERIC_AUTH_FAILURE)


def _bundle_response(principal: Principal) -> dict:
    services = get_auth_services()
    bundle = services.provisioner.provision(principal.id, principal.email or principal.username)
    return {
        "secret": bundle.secret,
        "enrollment_uri": bundle.enrollment_uri,
        "qr_code": render_qr_data_uri(bundle.enrollment_uri),
        "backup_codes": list(bundle.backup_codes),
    }


def _session_response(principal: Principal):
    services = get_auth_services()
    token = services.issuer.issue(principal)
    services.principals.record_login(principal.id)

    response = jsonify({
        "token": token.value,
        "expires_at": token.claims.expires_at.isoformat(),
        "principal": {"id": principal.id, "role": principal.role},
        "message": "Login successful",
    })
    response.headers[services.session_config.token_header] = token.value
    return response


# =============================================================================
# Password step
# =============================================================================

@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Check username/email and password, then hand out an MFA challenge.

    Admins without an active MFA credential get a fresh provisioning bundle
    in the same response; any earlier unconfirmed enrollment is replaced.
    """
    body = _parse(LoginRequest)
    services = get_auth_services()

    principal = authenticate_principal(services.principals, body.username, body.password)
    if principal is None:
        raise AuthenticationError(GENERIC_AUTH_FAILURE)

    mfa_token = services.challenge.create(principal.id)
    credential = services.credentials.get(principal.id)

    if credential is not None and credential.enabled:
        return jsonify({
            "requires_mfa": True,
            "mfa_token": mfa_token,
            "message": "MFA verification required",
        })

    return jsonify({
        "requires_mfa_setup": True,
        "mfa_token": mfa_token,
        "mfa": _bundle_response(principal),
        "message": "Scan the QR code with an authenticator app, then confirm with a code",
    })


@auth_bp.route('/me', methods=['GET'])
@session_required
def get_current_admin():
    """Get current authenticated admin."""
    principal = g.current_principal
    return jsonify({
        "id": principal.id,
        "username": principal.username,
        "email": principal.email,
        "role": principal.role,
        "is_active": principal.active,
        "last_login": principal.last_login.isoformat() if principal.last_login else None,
    })


# =============================================================================
# MFA enrollment
# =============================================================================

@mfa_bp.route('/provision', methods=['POST'])
def provision():
    """Regenerate the secret and backup codes of a pending enrollment."""
    body = _parse(MfaTokenRequest)
    principal = _challenge_principal(body.mfa_token)
    services = get_auth_services()

    credential = services.credentials.get(principal.id)
    if credential is not None and credential.enabled:
        raise ConflictError("MFA is already active")

    return jsonify({
        "mfa": _bundle_response(principal),
        "message": "Scan the QR code with an authenticator app, then confirm with a code",
    })


@mfa_bp.route('/confirm', methods=['POST'])
def confirm():
    """Confirm enrollment with the first TOTP code; returns the first session."""
    body = _parse(MfaConfirmRequest)
    principal = _challenge_principal(body.mfa_token)

    result = get_auth_services().verifier.confirm_enrollment(principal.id, body.code)
    _require_success(result)

    return _session_response(principal)


@mfa_bp.route('/status', methods=['GET'])
@session_required
def mfa_status():
    """MFA state of the current admin. Never includes the secret."""
    status = get_auth_services().credentials.status(g.current_principal.id)

    return jsonify({
        "is_enabled": status.is_enabled,
        "is_pending": status.is_pending,
        "backup_codes_remaining": status.backup_codes_remaining,
    })


# =============================================================================
# Session login (second factor)
# =============================================================================

@session_bp.route('/login', methods=['POST'])
def session_login():
    """Exchange a challenge token plus TOTP or backup code for a session."""
    body = _parse(SessionLoginRequest)
    principal = _challenge_principal(body.mfa_token)
    verifier = get_auth_services().verifier

    if body.backup_code is not None:
        result = verifier.verify_backup_code(principal.id, body.backup_code)
    else:
        result = verifier.verify_login(principal.id, body.code)
    _require_success(result)

    return _session_response(principal)
