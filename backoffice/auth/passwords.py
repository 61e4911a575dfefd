"""
Password hashing and verification (werkzeug).

Strength policy and lockout are out of scope here; admins are seeded by
operators (scripts/seed_admin.py).
"""
from werkzeug.security import generate_password_hash, check_password_hash

__all__ = [
    "hash_password",
    "verify_password",
    "DUMMY_PASSWORD_HASH",
]


def hash_password(password: str) -> str:
    """Hash a password (werkzeug default: scrypt)."""
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    return check_password_hash(password_hash, password)


# Checked against when the login is unknown, so both paths pay for one hash
DUMMY_PASSWORD_HASH = generate_password_hash("not-a-real-password")
