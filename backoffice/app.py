"""
Flask Application Factory.

Creates and configures the back office API: logging, database schema, auth
services, CORS, error handlers, middleware and blueprints.
"""

import time
import uuid
import logging

from flask import Flask, jsonify, request, g
from werkzeug.exceptions import HTTPException

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(config=None, settings=None, key_provider=None, db=None, clock=time.time):
    """Create and configure the Flask application.

    Args:
        config: Optional dict of Flask config overrides (e.g. {'TESTING': True}).
        settings: AppSettings; defaults to get_settings().
        key_provider: SigningKeyProvider; defaults to the Vault/env SecretsManager.
        db: DatabaseManager; defaults to the singleton for settings.database.
        clock: Unix-time source shared by TOTP checks and session tokens.

    Returns:
        Configured Flask app instance.

    Raises:
        SigningKeyUnavailable: no session signing key is configured.
    """
    from config.settings import get_settings
    settings = settings or get_settings()

    app = Flask(__name__)

    if config:
        app.config.update(config)

    # Configure logging
    from backoffice.logging_config import configure_logging
    configure_logging(app, settings)

    # Initialize database and auth schema
    from core.db import DatabaseManager
    from backoffice.auth import schema
    if db is None:
        db = DatabaseManager.get_instance(
            db_url=settings.database.database_url,
            db_path=settings.database.sqlite_path,
        )
    schema.initialize(db)

    # Auth services (a missing signing key aborts startup here)
    from backoffice.auth import SigningKeyUnavailable, build_auth_services
    try:
        app.extensions["auth"] = build_auth_services(settings, db, key_provider, clock)
    except SigningKeyUnavailable:
        logger.critical("No session signing key configured; refusing to start")
        raise

    # Initialize extensions (CORS)
    from backoffice.extensions import init_extensions
    init_extensions(app, settings)

    # Register custom error handlers for APIError hierarchy
    from core.errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    _register_blueprints(app)

    # Register middleware
    _register_middleware(app)

    # Register global error handlers
    _register_error_handlers(app)

    return app


def _register_blueprints(app):
    """Register all route blueprints."""
    from backoffice.routes import health_bp, auth_bp, mfa_bp, session_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(mfa_bp)
    app.register_blueprint(session_bp)


def _register_middleware(app):
    """Register request tracking and security middleware."""

    @app.before_request
    def before_request_tracking():
        """Track request start and assign request ID."""
        g.request_id = request.headers.get('X-Request-ID', str(uuid.uuid4())[:8])
        g.start_time = time.time()

    @app.after_request
    def after_request_tracking(response):
        """Log request completion with timing and add security headers."""
        duration_ms = 0
        if hasattr(g, 'start_time'):
            duration_ms = (time.time() - g.start_time) * 1000

        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id

        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if request.path == '/healthz':
            log_level = logging.DEBUG

        principal = getattr(g, 'current_principal', None)
        logger.log(
            log_level,
            f"{request.method} {request.path} -> {response.status_code} ({duration_ms:.1f}ms)",
            extra={
                'request_id': getattr(g, 'request_id', 'unknown'),
                'method': request.method,
                'endpoint': request.path,
                'status_code': response.status_code,
                'duration_ms': round(duration_ms, 2),
                'remote_addr': request.remote_addr,
                'user': principal.id if principal else None,
            }
        )

        # Security headers
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        # Responses may carry tokens, secrets or backup codes
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'no-store'

        return response


def _register_error_handlers(app):
    """Register global exception handler."""

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.name}), e.code

        logger.exception(
            f"Unhandled exception: {e.__class__.__name__}",
            extra={
                'request_id': getattr(g, 'request_id', 'unknown'),
                'method': request.method,
                'endpoint': request.path,
                'remote_addr': request.remote_addr,
            }
        )
        return jsonify({
            'error': 'Internal server error',
            'request_id': getattr(g, 'request_id', 'unknown'),
        }), 500
