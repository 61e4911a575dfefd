"""
Auth exceptions.

Code checks never raise for a wrong or malformed code; those are tagged
results (see types.Outcome). Exceptions are reserved for conditions the
caller cannot resolve locally.
"""
from core.errors import ServiceUnavailableError


class StoreUnavailable(ServiceUnavailableError):
    """Credential or principal store I/O failed (503, never a rejected code)."""

    def __init__(self, message: str = "Authentication service unavailable"):
        super().__init__(message)


class SigningKeyUnavailable(RuntimeError):
    """No session signing key is configured. Raised at startup."""
