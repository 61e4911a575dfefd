"""Shared pytest fixtures for back office tests."""
import os
import sys

import pytest
from cryptography.fernet import Fernet

# Add project root to path
_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _PROJECT_ROOT)

# ---------------------------------------------------------------------------
# Deterministic test environment - set BEFORE any backoffice module imports.
# ---------------------------------------------------------------------------
os.environ.setdefault('TESTING', 'true')
os.environ.setdefault('JWT_SECRET', 'test-jwt-secret-for-pytest-32chars!')

# Step-aligned instant: 1_700_000_010 == 56_666_667 * 30
BASE_TIME = 1_700_000_010.0


class FakeClock:
    """Callable unix-time source that tests move by hand."""

    def __init__(self, now: float = BASE_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticKeyProvider:
    """SigningKeyProvider with fixed keys."""

    def __init__(self, signing_key: str = "unit-test-signing-key-0123456789abcdef",
                 encryption_key: str | None = None):
        self.signing_key = signing_key
        self.encryption_key = encryption_key if encryption_key is not None else Fernet.generate_key().decode()

    def get_session_signing_key(self) -> str:
        if not self.signing_key:
            raise ValueError("JWT_SECRET env var is required.")
        return self.signing_key

    def get_mfa_encryption_key(self) -> str:
        return self.encryption_key


# =============================================================================
# Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def _reset_singletons():
    """Reset DB and settings singletons between tests for isolation."""
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    from core.db import DatabaseManager
    DatabaseManager.reset()
    get_settings.cache_clear()


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def db(tmp_path):
    """Per-test SQLite database with the auth schema, wired into DatabaseManager."""
    from core.db import DatabaseManager
    from backoffice.auth import schema

    DatabaseManager.reset()
    dm = DatabaseManager.get_instance(db_path=tmp_path / "test_backoffice.db")
    schema.initialize(dm)
    yield dm


# =============================================================================
# Auth services
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def key_provider():
    return StaticKeyProvider()


@pytest.fixture
def settings():
    from config.settings import AppSettings
    return AppSettings()


@pytest.fixture
def services(db, clock, key_provider, settings):
    from backoffice.auth import build_auth_services
    return build_auth_services(settings, db, key_provider=key_provider, clock=clock)


@pytest.fixture
def admin(services):
    """Active admin without an MFA credential."""
    from backoffice.auth import hash_password
    return services.principals.create(
        username="alice",
        password_hash=hash_password("correct-horse"),
        email="alice@example.com",
        role="admin",
    )


@pytest.fixture
def enrolled_admin(services, admin, clock):
    """Admin with confirmed MFA. Yields (principal, bundle)."""
    bundle = services.provisioner.provision(admin.id, admin.email)
    code = services.engine.generate(bundle.secret, services.engine.time_step(clock()))
    result = services.verifier.confirm_enrollment(admin.id, code)
    assert result.ok
    return admin, bundle


# =============================================================================
# Flask app
# =============================================================================

@pytest.fixture
def app(db, clock, key_provider, settings):
    from backoffice.app import create_app
    app = create_app(
        {'TESTING': True},
        settings=settings,
        key_provider=key_provider,
        db=db,
        clock=clock,
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_services(app):
    return app.extensions["auth"]
