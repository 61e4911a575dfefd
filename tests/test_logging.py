"""Tests for structured logging."""
import json
import logging

from backoffice.logging_config import JSONFormatter, configure_logging


def _record(**extra):
    record = logging.LogRecord("backoffice.test", logging.WARNING, __file__, 10, "Login failed for %s", ("p-1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    entry = json.loads(JSONFormatter().format(_record(request_id="abc123", status_code=401)))

    assert entry["level"] == "WARNING"
    assert entry["logger"] == "backoffice.test"
    assert entry["message"] == "Login failed for p-1"
    assert entry["request_id"] == "abc123"
    assert entry["status_code"] == 401
    assert entry["timestamp"].endswith("Z")


def test_json_formatter_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys
        record = logging.LogRecord("backoffice", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    entry = json.loads(JSONFormatter().format(record))
    assert "RuntimeError: boom" in entry["exception"]


def test_configure_logging_sets_package_loggers(settings):
    logger = configure_logging(settings=settings)

    assert logger.name == "backoffice"
    for name in ("backoffice", "core", "config"):
        pkg = logging.getLogger(name)
        assert pkg.level == logging.INFO
        assert isinstance(pkg.handlers[0].formatter, JSONFormatter)


def test_request_log_line(client, caplog):
    with caplog.at_level(logging.DEBUG, logger="backoffice"):
        client.get('/api/auth/me')
    records = [r for r in caplog.records if r.name == "backoffice.app"]
    assert records and records[-1].status_code == 401
