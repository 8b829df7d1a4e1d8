"""Tests for secret redaction in log output."""

import logging

from server.logging_config import REDACTED, SecretRedactingFilter, redact

SESSION = "1760000000000." + "ab" * 32
TOKEN = "cd" * 32


def test_redact_session_cookie_header():
    header = f"Cookie: theme=dark; admin_session={SESSION}; lang=en"
    redacted = redact(header)
    assert SESSION not in redacted
    assert f"admin_session={REDACTED}; lang=en" in redacted
    assert "theme=dark" in redacted


def test_redact_share_path_keeps_slug():
    line = f'GET /share/analytics/acme-q1/{TOKEN}?x=1 HTTP/1.1'
    redacted = redact(line)
    assert TOKEN not in redacted
    assert f"/share/analytics/acme-q1/{REDACTED}?x=1" in redacted


def test_redact_leaves_other_text_alone():
    line = "GET /admin/projects/acme-q1 HTTP/1.1"
    assert redact(line) == line


def test_filter_redacts_access_log_args():
    """Test that uvicorn-style access records keep their args tuple shape."""
    record = logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='%s - "%s %s HTTP/%s" %d',
        args=("127.0.0.1:5000", "GET", f"/share/analytics/acme-q1/{TOKEN}", "1.1", 200),
        exc_info=None,
    )
    assert SecretRedactingFilter().filter(record) is True
    assert len(record.args) == 5
    assert record.args[4] == 200
    message = record.getMessage()
    assert TOKEN not in message
    assert f"/share/analytics/acme-q1/{REDACTED}" in message


def test_filter_redacts_message_text():
    record = logging.LogRecord(
        name="uat.request",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=f"cookie admin_session={SESSION}",
        args=None,
        exc_info=None,
    )
    SecretRedactingFilter().filter(record)
    assert record.getMessage() == f"cookie admin_session={REDACTED}"
