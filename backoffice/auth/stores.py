"""
Principal and MFA credential stores.

The Protocols are what the MFA core consumes; the Sql* classes implement
them over core.db.DatabaseManager. Any driver error is logged and raised
as StoreUnavailable so callers can tell "backend down" from "wrong code".

Backup codes cross this boundary as SHA-256 digests (types.digest_backup_code).
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Protocol

from core.db import DatabaseManager, database_errors
from .crypto import SecretCipher
from .errors import StoreUnavailable
from .types import MfaCredential, MfaStatus, Principal

logger = logging.getLogger(__name__)


class PrincipalStore(Protocol):
    def find_by_id(self, principal_id: str) -> Optional[Principal]: ...


class CredentialStore(Protocol):
    def get(self, principal_id: str) -> Optional[MfaCredential]: ...

    def put(self, principal_id: str, credential: MfaCredential) -> None: ...

    def enable(self, principal_id: str) -> bool: ...

    def try_consume_backup_code(self, principal_id: str, code_digest: str) -> bool: ...


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def _transaction(db: DatabaseManager, operation: str):
    """Connection in a transaction; driver errors become StoreUnavailable."""
    try:
        with db.connect() as conn:
            yield conn
    except database_errors() as e:
        logger.error(f"{operation} failed: {e.__class__.__name__}: {e}")
        raise StoreUnavailable() from e


def _row_to_principal(row) -> Principal:
    last_login = row["last_login"]
    return Principal(
        id=row["id"],
        role=row["role"],
        active=bool(row["is_active"]),
        username=row["username"],
        email=row["email"] or "",
        last_login=datetime.fromisoformat(last_login) if last_login else None,
    )


_PRINCIPAL_COLUMNS = "id, username, email, role, is_active, last_login"


class SqlPrincipalStore:
    """Admin accounts in the ``admins`` table."""

    def __init__(self, db: DatabaseManager):
        self._db = db

    def find_by_id(self, principal_id: str) -> Optional[Principal]:
        with _transaction(self._db, "load principal") as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {_PRINCIPAL_COLUMNS} FROM admins WHERE id = ?", (principal_id,))
            row = cursor.fetchone()
        return _row_to_principal(row) if row else None

    def find_by_login(self, login: str) -> Optional[Principal]:
        """Look up by username or email."""
        with _transaction(self._db, "load principal") as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_PRINCIPAL_COLUMNS} FROM admins WHERE username = ? OR email = ?",
                (login, login),
            )
            row = cursor.fetchone()
        return _row_to_principal(row) if row else None

    def get_password_hash(self, principal_id: str) -> Optional[str]:
        with _transaction(self._db, "load password hash") as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT password_hash FROM admins WHERE id = ?", (principal_id,))
            row = cursor.fetchone()
        return row["password_hash"] if row else None

    def record_login(self, principal_id: str) -> None:
        with _transaction(self._db, "record login") as conn:
            cursor = conn.cursor()
            cursor.execute("UPDATE admins SET last_login = ? WHERE id = ?", (_now(), principal_id))

    def set_active(self, principal_id: str, active: bool) -> bool:
        with _transaction(self._db, "update principal") as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE admins SET is_active = ? WHERE id = ?",
                (1 if active else 0, principal_id),
            )
            return cursor.rowcount == 1

    def create(
        self,
        username: str,
        password_hash: str,
        email: Optional[str] = None,
        role: str = "admin",
        active: bool = True,
    ) -> Principal:
        """Insert a new admin.

        Raises:
            ValueError: username or email already taken
        """
        principal_id = uuid.uuid4().hex
        with _transaction(self._db, "create principal") as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT 1 FROM admins WHERE username = ? OR (email IS NOT NULL AND email = ?)",
                (username, email),
            )
            if cursor.fetchone():
                raise ValueError(f"Admin '{username}' already exists")
            cursor.execute(
                """
                INSERT INTO admins (id, username, email, password_hash, role, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (principal_id, username, email, password_hash, role, 1 if active else 0, _now()),
            )
        logger.info(f"Created admin {principal_id} ({role})")
        return Principal(id=principal_id, role=role, active=active, username=username, email=email or "")


class SqlCredentialStore:
    """MFA credentials in ``mfa_credentials`` + ``mfa_backup_codes``.

    Secrets are Fernet-encrypted at rest; backup codes are stored as digests.
    """

    def __init__(self, db: DatabaseManager, cipher: SecretCipher):
        self._db = db
        self._cipher = cipher

    def get(self, principal_id: str) -> Optional[MfaCredential]:
        with _transaction(self._db, "load MFA credential") as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT secret_encrypted, is_enabled FROM mfa_credentials WHERE principal_id = ?",
                (principal_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            cursor.execute(
                "SELECT code_hash FROM mfa_backup_codes WHERE principal_id = ?",
                (principal_id,),
            )
            digests = frozenset(r["code_hash"] for r in cursor.fetchall())

        return MfaCredential(
            principal_id=principal_id,
            secret=self._cipher.decrypt(row["secret_encrypted"]),
            enabled=bool(row["is_enabled"]),
            backup_codes=digests,
        )

    def put(self, principal_id: str, credential: MfaCredential) -> None:
        """Write the credential, replacing any previous secret and every backup code."""
        now = _now()
        encrypted = self._cipher.encrypt(credential.secret)
        confirmed_at = now if credential.enabled else None

        with _transaction(self._db, "store MFA credential") as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO mfa_credentials (principal_id, secret_encrypted, is_enabled, created_at, confirmed_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (principal_id) DO UPDATE SET
                    secret_encrypted = excluded.secret_encrypted,
                    is_enabled = excluded.is_enabled,
                    created_at = excluded.created_at,
                    confirmed_at = excluded.confirmed_at
                """,
                (principal_id, encrypted, 1 if credential.enabled else 0, now, confirmed_at),
            )
            cursor.execute("DELETE FROM mfa_backup_codes WHERE principal_id = ?", (principal_id,))
            cursor.executemany(
                "INSERT INTO mfa_backup_codes (principal_id, code_hash, created_at) VALUES (?, ?, ?)",
                [(principal_id, digest, now) for digest in credential.backup_codes],
            )

    def enable(self, principal_id: str) -> bool:
        """Flip a pending credential to enabled. False if none was pending."""
        with _transaction(self._db, "enable MFA credential") as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE mfa_credentials SET is_enabled = 1, confirmed_at = ?
                WHERE principal_id = ? AND is_enabled = 0
                """,
                (_now(), principal_id),
            )
            return cursor.rowcount == 1

    def try_consume_backup_code(self, principal_id: str, code_digest: str) -> bool:
        """Remove the code if present. Exactly one caller can win per code."""
        with _transaction(self._db, "consume backup code") as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM mfa_backup_codes WHERE principal_id = ? AND code_hash = ?",
                (principal_id, code_digest),
            )
            return cursor.rowcount == 1

    def status(self, principal_id: str) -> MfaStatus:
        return read_mfa_status(self._db, principal_id)


def read_mfa_status(db: DatabaseManager, principal_id: str) -> MfaStatus:
    """Enrollment state without decrypting anything (no cipher needed)."""
    with _transaction(db, "load MFA status") as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT is_enabled FROM mfa_credentials WHERE principal_id = ?",
            (principal_id,),
        )
        row = cursor.fetchone()
        cursor.execute(
            "SELECT COUNT(*) AS count FROM mfa_backup_codes WHERE principal_id = ?",
            (principal_id,),
        )
        count_row = cursor.fetchone()

    enabled = bool(row and row["is_enabled"])
    return MfaStatus(
        is_enabled=enabled,
        is_pending=bool(row) and not enabled,
        backup_codes_remaining=count_row["count"] if count_row else 0,
    )
