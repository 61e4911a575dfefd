"""
Auth database schema initialization.

IMPORTANT: initialize() should ONLY be called by:
- backoffice/app.py at startup
- scripts/ and test fixtures

Never call schema initialization from feature code (routes, decorators, etc.).
"""
import logging

from core.db import DatabaseManager, adapt_schema_sql

logger = logging.getLogger(__name__)


_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS admins (
        id TEXT PRIMARY KEY,
        username TEXT UNIQUE NOT NULL,
        email TEXT UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'admin',
        is_active INTEGER NOT NULL DEFAULT 1,
        last_login TEXT,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mfa_credentials (
        principal_id TEXT PRIMARY KEY,
        secret_encrypted TEXT NOT NULL,
        is_enabled INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        confirmed_at TEXT DEFAULT NULL,
        FOREIGN KEY (principal_id) REFERENCES admins(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS mfa_backup_codes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        principal_id TEXT NOT NULL,
        code_hash TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (principal_id, code_hash),
        FOREIGN KEY (principal_id) REFERENCES admins(id) ON DELETE CASCADE
    )
    """,
)

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_mfa_backup_codes_principal ON mfa_backup_codes(principal_id)",
    "CREATE INDEX IF NOT EXISTS idx_admins_email ON admins(email)",
)


def initialize(db: DatabaseManager | None = None) -> None:
    """Create the admin and MFA tables if they don't exist."""
    db = db or DatabaseManager.get_instance()
    with db.connect() as conn:
        cursor = conn.cursor()
        for ddl in _TABLES:
            cursor.execute(adapt_schema_sql(ddl, db.db_url))
        for ddl in _INDEXES:
            cursor.execute(ddl)
    logger.info("Auth schema initialized")
