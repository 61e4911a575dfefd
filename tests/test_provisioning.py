"""Tests for MFA secret provisioning and enrollment presentation."""
import base64
import string
from urllib.parse import parse_qs, unquote, urlparse

import pytest

from backoffice.auth import MfaConfig, Outcome, render_qr_data_uri
from backoffice.auth import provisioning
from backoffice.auth.provisioning import build_enrollment_uri, generate_backup_codes
from backoffice.auth.types import digest_backup_code


class TestProvision:

    def test_secret_is_base32_with_at_least_160_bits(self, services, admin):
        bundle = services.provisioner.provision(admin.id, admin.email)
        raw = base64.b32decode(bundle.secret)
        assert len(raw) * 8 >= 160

    def test_backup_codes_shape(self, services, admin):
        bundle = services.provisioner.provision(admin.id, admin.email)
        assert len(bundle.backup_codes) == 8
        assert len(set(bundle.backup_codes)) == 8
        allowed = set(string.ascii_uppercase + string.digits)
        for code in bundle.backup_codes:
            assert len(code) == 10
            assert set(code) <= allowed

    def test_persists_disabled_credential_with_digests(self, services, admin):
        bundle = services.provisioner.provision(admin.id, admin.email)
        credential = services.credentials.get(admin.id)

        assert credential.enabled is False
        assert credential.secret == bundle.secret
        assert credential.backup_codes == frozenset(digest_backup_code(c) for c in bundle.backup_codes)
        assert not set(bundle.backup_codes) & credential.backup_codes

    def test_repr_hides_secret_material(self, services, admin):
        bundle = services.provisioner.provision(admin.id, admin.email)
        text = repr(bundle)
        assert bundle.secret not in text
        assert not any(code in text for code in bundle.backup_codes)

    def test_reprovision_discards_first_batch(self, services, admin, clock):
        first = services.provisioner.provision(admin.id, admin.email)
        second = services.provisioner.provision(admin.id, admin.email)
        assert first.secret != second.secret

        # The old secret can no longer confirm enrollment
        step = services.engine.time_step(clock())
        old_code = services.engine.generate(first.secret, step)
        new_code = services.engine.generate(second.secret, step)
        if old_code != new_code:
            result = services.verifier.confirm_enrollment(admin.id, old_code)
            assert result.outcome is Outcome.REJECTED

        assert services.verifier.confirm_enrollment(admin.id, new_code).outcome is Outcome.ENROLLED

        for code in first.backup_codes:
            if code in second.backup_codes:
                continue
            result = services.verifier.verify_backup_code(admin.id, code)
            assert result.outcome is Outcome.REJECTED
        assert services.verifier.verify_backup_code(admin.id, second.backup_codes[0]).outcome is Outcome.ACCEPTED


class TestEnrollmentUri:

    def test_contains_every_parameter(self):
        config = MfaConfig()
        uri = build_enrollment_uri("JBSWY3DPEHPK3PXP", "alice@example.com", config)
        parsed = urlparse(uri)
        query = parse_qs(parsed.query)

        assert parsed.scheme == "otpauth"
        assert parsed.netloc == "totp"
        assert unquote(parsed.path) == "/SNAP Marketplace:alice@example.com"
        assert query == {
            "secret": ["JBSWY3DPEHPK3PXP"],
            "issuer": ["SNAP Marketplace"],
            "algorithm": ["SHA1"],
            "digits": ["6"],
            "period": ["30"],
        }

    def test_label_is_escaped(self):
        uri = build_enrollment_uri("JBSWY3DPEHPK3PXP", "a b/c", MfaConfig(issuer_name="Acme"))
        assert uri.startswith("otpauth://totp/Acme:a%20b%2Fc?")


class TestBackupCodes:

    def test_regenerates_on_collision(self, monkeypatch):
        chars = iter("AAAABB")
        monkeypatch.setattr(provisioning.secrets, "choice", lambda alphabet: next(chars))
        assert generate_backup_codes(count=2, length=2) == ("AA", "BB")

    def test_digest_normalizes_case_and_whitespace(self):
        assert digest_backup_code("  abcde12345 ") == digest_backup_code("ABCDE12345")


class TestQrCode:

    def test_png_data_uri(self):
        data_uri = render_qr_data_uri("otpauth://totp/Acme:alice?secret=JBSWY3DPEHPK3PXP")
        prefix = "data:image/png;base64,"
        assert data_uri.startswith(prefix)
        assert base64.b64decode(data_uri[len(prefix):]).startswith(b"\x89PNG")


@pytest.mark.parametrize("count, length", [(8, 10), (12, 16)])
def test_backup_code_count_and_length_follow_config(count, length):
    codes = generate_backup_codes(count, length)
    assert len(codes) == count
    assert all(len(c) == length for c in codes)
