"""
Database abstraction layer (DB-API 2.0 connection pool).

Provides a thin abstraction over sqlite3 and psycopg2 for database portability.
NOT an ORM: just connection management and SQL dialect adaptation.

Usage:
    from core.db import DatabaseManager, adapt_schema_sql

    dm = DatabaseManager.get_instance()
    with dm.connect() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM admins WHERE id = ?", ("a1",))
        row = cursor.fetchone()

    # SQL adaptation for PostgreSQL
    sql = adapt_schema_sql("CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT)", db_url)
    # -> "CREATE TABLE t (id SERIAL PRIMARY KEY)" when using PostgreSQL
"""

import logging
import os
import queue
import re
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def is_postgres(db_url: Optional[str] = None) -> bool:
    """Check if the given URL points to PostgreSQL."""
    if db_url is None:
        return False
    return db_url.startswith("postgresql://") or db_url.startswith("postgres://")


def database_errors() -> tuple[type[BaseException], ...]:
    """Exception classes raised by the configured drivers.

    psycopg2 is only imported when installed (PostgreSQL deployments).
    """
    errors: tuple[type[BaseException], ...] = (sqlite3.Error,)
    try:
        import psycopg2
    except ImportError:
        return errors
    return errors + (psycopg2.Error,)


class _CompatConnection:
    """
    Wraps a psycopg2 connection to provide SQLite-compatible interface.

    - Accepts '?' placeholders and converts to '%s'
    - Returns dict-like rows via RealDictCursor
    - Proxies commit/rollback/close
    """

    def __init__(self, conn):
        self._conn = conn

    def cursor(self):
        import psycopg2.extras
        return _CompatCursor(self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor))

    def commit(self):
        self._conn.commit()

    def rollback(self):
        self._conn.rollback()

    def close(self):
        self._conn.close()

    def execute(self, sql, params=None):
        cursor = self.cursor()
        cursor.execute(sql, params)
        return cursor


class _CompatCursor:
    """Wraps a psycopg2 cursor to accept '?' placeholders."""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, sql, params=None):
        adapted_sql = sql.replace("?", "%s")
        return self._cursor.execute(adapted_sql, params)

    def executemany(self, sql, params_seq):
        adapted_sql = sql.replace("?", "%s")
        return self._cursor.executemany(adapted_sql, params_seq)

    def fetchone(self):
        return self._cursor.fetchone()

    def fetchall(self):
        return self._cursor.fetchall()

    @property
    def rowcount(self):
        return self._cursor.rowcount

    def close(self):
        self._cursor.close()


def adapt_schema_sql(sql: str, db_url: Optional[str] = None) -> str:
    """
    Adapt SQLite schema SQL for the target database dialect.

    Conversions for PostgreSQL:
    - INTEGER PRIMARY KEY AUTOINCREMENT -> SERIAL PRIMARY KEY
    - No other changes needed (TEXT, INTEGER work in both)
    """
    if not is_postgres(db_url):
        return sql

    return re.sub(
        r'INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT',
        'SERIAL PRIMARY KEY',
        sql,
        flags=re.IGNORECASE,
    )


# =============================================================================
# DatabaseManager: connection pool singleton
# =============================================================================

_DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "backoffice.db"


class DatabaseManager:
    """
    Singleton connection pool for the back office database.

    Reads DATABASE_URL env var for PostgreSQL; defaults to
    data/backoffice.db (SQLite) when unset.

    Usage:
        dm = DatabaseManager.get_instance()
        with dm.connect() as conn:
            conn.execute("SELECT ...")
    """

    _instance: Optional["DatabaseManager"] = None
    _lock = threading.Lock()

    def __init__(
        self,
        db_url: Optional[str] = None,
        db_path: Optional[Path] = None,
        pool_size: int = 10,
    ):
        self._db_url = db_url or os.environ.get("DATABASE_URL")
        self._db_path = Path(db_path) if db_path else _DEFAULT_DB_PATH
        self._pool_size = pool_size
        self._use_postgres = is_postgres(self._db_url)

        # Ensure data directory exists for SQLite
        if not self._use_postgres:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Connection pool (SQLite only; PostgreSQL uses the psycopg2 pool)
        self._pool: queue.Queue = queue.Queue(maxsize=pool_size)
        self._pg_pool = None

        if self._use_postgres:
            self._init_pg_pool()

    def _init_pg_pool(self):
        """Initialize PostgreSQL connection pool."""
        try:
            import psycopg2.pool
        except ImportError:
            raise ImportError(
                "psycopg2 is required for PostgreSQL. "
                "Install with: pip install psycopg2-binary"
            )
        self._pg_pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=2,
            maxconn=self._pool_size,
            dsn=self._db_url,
        )

    @classmethod
    def get_instance(
        cls,
        db_url: Optional[str] = None,
        db_path: Optional[Path] = None,
    ) -> "DatabaseManager":
        """Get or create the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(db_url=db_url, db_path=db_path)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset the singleton and drain the pool. For testing only."""
        with cls._lock:
            if cls._instance is not None:
                inst = cls._instance
                while not inst._pool.empty():
                    try:
                        conn = inst._pool.get_nowait()
                        conn.close()
                    except (queue.Empty, sqlite3.Error):
                        pass
                if inst._pg_pool is not None:
                    inst._pg_pool.closeall()
                cls._instance = None

    # ----- connection acquisition / release -----------------------------------

    def get_connection(self):
        """Acquire a connection from the pool."""
        if self._use_postgres:
            raw = self._pg_pool.getconn()
            raw.autocommit = False
            return _CompatConnection(raw)

        # SQLite: try pool first, create new if empty
        try:
            conn = self._pool.get_nowait()
            conn.execute("SELECT 1")
            return conn
        except queue.Empty:
            pass
        except sqlite3.Error:
            pass  # Stale connection, create a new one

        # isolation_level=None: transactions are opened explicitly with BEGIN
        conn = sqlite3.connect(
            str(self._db_path), check_same_thread=False, timeout=30, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def release_connection(self, conn):
        """Return a connection to the pool."""
        if self._use_postgres:
            raw = conn._conn if isinstance(conn, _CompatConnection) else conn
            self._pg_pool.putconn(raw)
            return

        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()

    @contextmanager
    def connect(self):
        """Context manager: acquire → BEGIN → yield → commit/rollback → release."""
        conn = self.get_connection()
        try:
            if not self._use_postgres:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self.release_connection(conn)

    @property
    def db_path(self) -> Path:
        """Return the SQLite database path."""
        return self._db_path

    @property
    def db_url(self) -> Optional[str]:
        """Return the database URL (None for SQLite)."""
        return self._db_url
