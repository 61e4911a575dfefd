"""Tests for the operator scripts in scripts/."""
import importlib.util
import io
import json
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


def _load(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def seed_admin():
    return _load("seed_admin")


@pytest.fixture
def check_mfa_status():
    return _load("check_mfa_status")


def _seed(seed_admin, monkeypatch, *args, password="s3cret-pass"):
    monkeypatch.setattr("sys.stdin", io.StringIO(password + "\n"))
    return seed_admin.main(["--password-stdin", *args])


class TestSeedAdmin:

    def test_creates_admin(self, db, seed_admin, monkeypatch, capsys):
        assert _seed(seed_admin, monkeypatch, "--username", "dora", "--email", "dora@example.com") == 0
        assert "dora" in capsys.readouterr().out

    def test_duplicate(self, db, seed_admin, monkeypatch, capsys):
        _seed(seed_admin, monkeypatch, "--username", "dora")
        assert _seed(seed_admin, monkeypatch, "--username", "dora") == 1
        assert "already exists" in capsys.readouterr().err

    def test_short_password(self, db, seed_admin, monkeypatch):
        assert _seed(seed_admin, monkeypatch, "--username", "dora", password="abc") == 1


class TestCheckMfaStatus:

    def test_reports_without_secrets(self, db, services, enrolled_admin, check_mfa_status, capsys):
        principal, bundle = enrolled_admin

        assert check_mfa_status.main(["alice", "--json"]) == 0
        out = capsys.readouterr().out
        report = json.loads(out)

        assert report["mfa_enabled"] is True
        assert report["backup_codes_remaining"] == len(bundle.backup_codes)
        assert bundle.secret not in out
        assert all(code not in out for code in bundle.backup_codes)

    def test_unknown_admin(self, db, check_mfa_status, capsys):
        assert check_mfa_status.main(["ghost"]) == 1
        assert "ghost" in capsys.readouterr().err
