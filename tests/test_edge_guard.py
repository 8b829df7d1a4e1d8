"""Tests for the edge guard decision and post-login redirect targets."""

import pytest

from admin import auth as admin_auth

SECRET = "k" * 48
T = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


@pytest.mark.parametrize("path", ["/admin", "/admin/", "/admin/projects/acme-q1"])
def test_protected_path_without_cookie_redirects(path):
    assert admin_auth.edge_redirect(path, None, now_ms=T) == "/admin/login"


@pytest.mark.parametrize(
    "path",
    ["/admin/login", "/admin/logout", "/share/analytics/acme/abc", "/api/share-token/acme", "/administrator"],
)
def test_unprotected_paths_are_forwarded(path):
    assert admin_auth.edge_redirect(path, None, now_ms=T) is None


def test_fresh_cookie_is_forwarded():
    value = admin_auth.create_session_cookie_value(SECRET, now_ms=T)
    assert admin_auth.edge_redirect("/admin", value, now_ms=T + HOUR_MS) is None


def test_stale_cookie_redirects():
    value = admin_auth.create_session_cookie_value(SECRET, now_ms=T)
    assert admin_auth.edge_redirect("/admin", value, now_ms=T + 25 * HOUR_MS) == "/admin/login"


def test_malformed_cookie_redirects():
    assert admin_auth.edge_redirect("/admin", "garbage", now_ms=T) == "/admin/login"


@pytest.mark.parametrize(
    "next_path, expected",
    [
        ("", "/admin"),
        (None, "/admin"),
        ("/admin/projects/acme", "/admin/projects/acme"),
        ("/admin/login", "/admin"),
        ("https://evil.example/admin", "/admin"),
        ("//evil.example/admin", "/admin"),
        ("/share/analytics/x/y", "/admin"),
    ],
)
def test_safe_next_path(next_path, expected):
    assert admin_auth.safe_next_path(next_path) == expected
