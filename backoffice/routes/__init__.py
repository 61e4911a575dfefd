"""
Route blueprints for the back office API.
"""

from .health import health_bp
from .auth_routes import auth_bp, mfa_bp, session_bp

__all__ = ['health_bp', 'auth_bp', 'mfa_bp', 'session_bp']
