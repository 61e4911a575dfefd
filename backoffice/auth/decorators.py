"""
Flask route decorators for authentication.

Provides:
- session_required: run the request through the AuthenticationGate
"""
from functools import wraps

from flask import after_this_request, g, jsonify

from .services import get_auth_services
from .tokens import get_token_from_request
from .types import GateState


def session_required(f):
    """Decorator to require a valid session token for endpoint.

    Sets g.current_principal, g.current_role and g.session_claims on success
    and sends the renewed session token back in the token header
    (``x-token`` by default). Rejected requests get no renewed token.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        services = get_auth_services()
        result = services.gate.authenticate(get_token_from_request())

        if result.state is GateState.UNAUTHENTICATED:
            return jsonify({"error": "Missing authorization token"}), 401
        if result.state is not GateState.VALID:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_principal = result.principal
        g.current_role = result.principal.role
        g.session_claims = result.claims

        header = services.session_config.token_header
        renewed = result.renewed.value

        @after_this_request
        def attach_renewed_token(response):
            response.headers[header] = renewed
            return response

        return f(*args, **kwargs)
    return decorated
