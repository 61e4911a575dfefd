"""Tests for session tokens, renewal and MFA challenge tokens."""
from datetime import timedelta

import jwt
import pytest
from flask import Flask

from backoffice.auth import (
    MfaChallenge,
    Principal,
    SessionConfig,
    SessionIssuer,
    SigningKeyUnavailable,
    get_token_from_request,
    resolve_signing_key,
)

KEY = "session-signing-key-for-tests-0123456789"


@pytest.fixture
def config():
    return SessionConfig(signing_key=KEY, ttl=timedelta(minutes=30), challenge_ttl=timedelta(minutes=5))


@pytest.fixture
def issuer(config, clock):
    return SessionIssuer(config, clock=clock)


@pytest.fixture
def principal():
    return Principal(id="p-123", role="finance", active=True)


class TestIssue:

    def test_round_trip_preserves_identity(self, issuer, principal):
        token = issuer.issue(principal)
        claims = issuer.validate(token.value)

        assert claims is not None
        assert claims.subject_id == principal.id
        assert claims.role == principal.role
        assert claims == token.claims

    def test_expiry_is_issued_plus_ttl(self, issuer, principal, config, clock):
        token = issuer.issue(principal)
        assert token.claims.expires_at - token.claims.issued_at == config.ttl
        assert token.claims.issued_at.timestamp() == int(clock())

    def test_claims_on_the_wire(self, issuer, principal):
        token = issuer.issue(principal)
        payload = jwt.decode(token.value, KEY, algorithms=["HS256"], options={"verify_exp": False})
        assert payload["sub"] == principal.id
        assert payload["role"] == principal.role
        assert payload["type"] == "session"
        assert payload["jti"]

    def test_repr_hides_token(self, issuer, principal):
        token = issuer.issue(principal)
        assert token.value not in repr(token)


class TestValidate:

    def test_expired(self, issuer, principal, clock, config):
        token = issuer.issue(principal)
        clock.advance(config.ttl.total_seconds() - 1)
        assert issuer.validate(token.value) is not None
        clock.advance(1)
        assert issuer.validate(token.value) is None

    def test_wrong_key(self, issuer, principal, clock):
        token = issuer.issue(principal)
        other = SessionIssuer(SessionConfig(signing_key="another-key-entirely-0123456789abcd"), clock=clock)
        assert other.validate(token.value) is None

    def test_tampered(self, issuer, principal):
        token = issuer.issue(principal)
        header, payload, signature = token.value.split(".")
        tampered = f"{header}.{payload}.{signature[:-2]}{'AA' if signature[-2:] != 'AA' else 'BB'}"
        assert issuer.validate(tampered) is None

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c", None])
    def test_garbage(self, issuer, garbage):
        assert issuer.validate(garbage) is None

    def test_rejects_unsigned_algorithm(self, issuer, principal, clock):
        payload = {"sub": principal.id, "role": "admin", "jti": "x", "type": "session",
                   "iat": int(clock()), "exp": int(clock()) + 600}
        unsigned = jwt.encode(payload, None, algorithm="none")
        assert issuer.validate(unsigned) is None

    def test_rejects_challenge_token(self, issuer, config, clock):
        challenge = MfaChallenge(config, clock=clock).create("p-123")
        assert issuer.validate(challenge) is None


class TestRenew:

    def test_new_token_same_identity_later_expiry(self, issuer, principal, clock):
        original = issuer.issue(principal)
        clock.advance(600)

        renewed = issuer.renew(original.value)

        assert renewed is not None
        assert renewed.value != original.value
        assert renewed.claims.subject_id == principal.id
        assert renewed.claims.role == principal.role
        assert renewed.claims.expires_at == original.claims.expires_at + timedelta(seconds=600)

    def test_old_token_stays_valid_until_own_expiry(self, issuer, principal, clock, config):
        original = issuer.issue(principal)
        clock.advance(60)
        issuer.renew(original.value)

        assert issuer.validate(original.value) is not None
        clock.advance(config.ttl.total_seconds() - 60)
        assert issuer.validate(original.value) is None

    def test_never_renews_expired(self, issuer, principal, clock, config):
        original = issuer.issue(principal)
        clock.advance(config.ttl.total_seconds() + 1)
        assert issuer.renew(original.value) is None

    def test_never_renews_forged(self, issuer, principal, clock):
        forged = jwt.encode(
            {"sub": principal.id, "role": "admin", "jti": "x", "type": "session",
             "iat": int(clock()), "exp": int(clock()) + 600},
            "attacker-chosen-key-0123456789abcdef",
            algorithm="HS256",
        )
        assert issuer.renew(forged) is None


class TestChallenge:

    def test_round_trip(self, config, clock):
        challenge = MfaChallenge(config, clock=clock)
        assert challenge.verify(challenge.create("p-9")) == "p-9"

    def test_expires(self, config, clock):
        challenge = MfaChallenge(config, clock=clock)
        token = challenge.create("p-9")
        clock.advance(config.challenge_ttl.total_seconds())
        assert challenge.verify(token) is None

    def test_rejects_session_token(self, issuer, config, clock, principal):
        session = issuer.issue(principal)
        assert MfaChallenge(config, clock=clock).verify(session.value) is None


class TestSigningKey:

    class _Provider:
        def __init__(self, key=None, error=None):
            self.key = key
            self.error = error

        def get_session_signing_key(self):
            if self.error:
                raise self.error
            return self.key

    def test_returns_key(self):
        assert resolve_signing_key(self._Provider(key="k" * 40)) == "k" * 40

    def test_missing_key(self):
        with pytest.raises(SigningKeyUnavailable):
            resolve_signing_key(self._Provider(error=ValueError("JWT_SECRET env var is required.")))

    def test_empty_key(self):
        with pytest.raises(SigningKeyUnavailable):
            resolve_signing_key(self._Provider(key=""))


class TestTokenFromRequest:

    @pytest.fixture
    def flask_app(self):
        return Flask(__name__)

    def test_bearer(self, flask_app):
        with flask_app.test_request_context(headers={"Authorization": "Bearer abc.def.ghi"}):
            assert get_token_from_request() == "abc.def.ghi"

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic dXNlcjpwYXNz"}, {"Authorization": "Bearer "}])
    def test_absent(self, flask_app, headers):
        with flask_app.test_request_context(headers=headers):
            assert get_token_from_request() is None
