"""
Password step of the admin login (before MFA).
"""
import logging
from typing import Optional

from .passwords import DUMMY_PASSWORD_HASH, verify_password
from .stores import SqlPrincipalStore
from .types import Principal

logger = logging.getLogger(__name__)


def authenticate_principal(store: SqlPrincipalStore, login: str, password: str) -> Optional[Principal]:
    """Check username/email and password.

    Returns:
        The active Principal, or None for unknown login, wrong password and
        inactive account alike (callers answer all three the same way).
    """
    principal = store.find_by_login(login)
    if principal is None:
        verify_password(password, DUMMY_PASSWORD_HASH)
        logger.warning("Login failed: unknown admin")
        return None

    password_hash = store.get_password_hash(principal.id)
    if not password_hash or not verify_password(password, password_hash):
        logger.warning(f"Login failed: bad password for principal {principal.id}")
        return None

    if not principal.active:
        logger.warning(f"Login failed: principal {principal.id} is inactive")
        return None

    return principal
