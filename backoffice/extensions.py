"""
Flask extension setup.

Centralized extension initialization via init_extensions(app, settings).
"""

import logging

from flask_cors import CORS

from config.settings import AppSettings

logger = logging.getLogger(__name__)


def init_extensions(app, settings: AppSettings):
    """Initialize CORS for the browser dashboard.

    The renewed session token travels in a response header, which browsers
    hide from scripts unless it is listed in Access-Control-Expose-Headers.
    """
    allowed_origins = settings.cors_origin_list
    CORS(
        app,
        origins=allowed_origins,
        expose_headers=[settings.auth.token_header, "X-Request-ID"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    logger.debug(f"CORS enabled for {len(allowed_origins)} origin(s)")
