"""
Health check endpoint for the back office API.

Liveness plus database reachability, for load balancers and Kubernetes.
"""

import os
import time
import logging
from datetime import datetime, timezone
from flask import Blueprint, jsonify

from core.db import DatabaseManager, database_errors

logger = logging.getLogger(__name__)

# Create blueprint
health_bp = Blueprint('health', __name__)


def check_database_health() -> tuple[bool, str]:
    """Check database connectivity."""
    try:
        with DatabaseManager.get_instance().connect() as conn:
            conn.execute("SELECT 1")
        return True, "connected"
    except database_errors() as e:
        logger.warning(f"Database health check failed: {e}")
        return False, "connection failed"


@health_bp.route('/healthz')
def liveness():
    """
    Liveness probe with a database round trip.

    Answers 503 when the database is unreachable, since no login can
    succeed without it.
    """
    start = time.time()
    db_ok, db_msg = check_database_health()
    db_time = (time.time() - start) * 1000

    return jsonify({
        "status": "ok" if db_ok else "unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "backoffice-api",
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "checks": {
            "database": {
                "healthy": db_ok,
                "message": db_msg,
                "response_time_ms": round(db_time, 2),
            },
        },
    }), 200 if db_ok else 503
