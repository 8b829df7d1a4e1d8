"""Admin session and share-token auth: HMAC-SHA256 signed, stateless.

Session cookie value is `{timestamp_ms}.{hex_signature}` where the signature is
HMAC(secret, str(timestamp_ms)). Share tokens are HMAC(secret, resource_id).
Nothing is stored server-side; every check recomputes from the secret.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import time
from typing import Optional

from server.config import ConfigurationError
from server.logging_config import get_logger

logger = get_logger(__name__)

SESSION_COOKIE_NAME = "admin_session"
SESSION_MAX_AGE_MS = 24 * 60 * 60 * 1000  # 24 hours
SESSION_MAX_AGE_SECONDS = SESSION_MAX_AGE_MS // 1000
# Epoch milliseconds have 13 digits until the year 2286
MAX_TIMESTAMP_DIGITS = 16

LOGIN_PATH = "/admin/login"
LOGOUT_PATH = "/admin/logout"
PROTECTED_PREFIX = "/admin"


class InvalidCredentials(Exception):
    """Wrong admin password at login."""


class Unauthorized(Exception):
    """Full session verification failed in front of a privileged operation."""

    def __init__(self, reason: Optional["SessionRejection"] = None):
        super().__init__("Unauthorized")
        self.reason = reason


class SessionRejection(str, enum.Enum):
    """Why a session cookie was refused. Logged, never shown to the user."""

    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _key(secret: str) -> bytes:
    if not secret:
        raise ConfigurationError("Signing secret is empty")
    return secret.encode("utf-8")


# --- Signer ---


def sign(message: str, secret: str) -> str:
    """Hex HMAC-SHA256 of `message` keyed with `secret`."""
    return hmac.new(_key(secret), message.encode("utf-8"), hashlib.sha256).hexdigest()


def _constant_time_equals(expected: str, candidate: str) -> bool:
    expected_bytes = expected.encode("utf-8")
    candidate_bytes = candidate.encode("utf-8", "replace")
    if len(expected_bytes) != len(candidate_bytes):
        return False
    return hmac.compare_digest(expected_bytes, candidate_bytes)


def verify_signature(message: str, candidate: str, secret: str) -> bool:
    """Recompute the signature for `message` and compare in constant time."""
    if not isinstance(candidate, str):
        return False
    return _constant_time_equals(sign(message, secret), candidate)


# --- Admin session ---


def check_password(password: str, expected: str) -> bool:
    """Constant-time comparison of the submitted password against the configured one."""
    if not password or not expected:
        return False
    return hmac.compare_digest(password.encode("utf-8"), expected.encode("utf-8"))


def create_session_cookie_value(secret: str, now_ms: Optional[int] = None) -> str:
    """Build `timestamp.signature` for a session issued at `now_ms`."""
    timestamp = str(_now_ms() if now_ms is None else now_ms)
    return f"{timestamp}.{sign(timestamp, secret)}"


def issue_session(
    password: str,
    expected_password: str,
    secret: str,
    now_ms: Optional[int] = None,
) -> str:
    """Check the admin password and return a fresh session cookie value.

    Raises InvalidCredentials on mismatch.
    """
    if not check_password(password, expected_password):
        raise InvalidCredentials()
    return create_session_cookie_value(secret, now_ms)


def _parse_session(cookie_value: Optional[str]) -> Optional[tuple[str, int, str]]:
    """Split a cookie into (raw timestamp, timestamp, signature), or None if malformed."""
    if not isinstance(cookie_value, str):
        return None
    parts = cookie_value.split(".")
    if len(parts) != 2:
        return None
    raw_timestamp, signature = parts
    if not signature or len(raw_timestamp) > MAX_TIMESTAMP_DIGITS:
        return None
    if not raw_timestamp.isascii() or not raw_timestamp.isdigit():
        return None
    return raw_timestamp, int(raw_timestamp), signature


def _is_expired(timestamp: int, now_ms: Optional[int]) -> bool:
    now = _now_ms() if now_ms is None else now_ms
    return now - timestamp > SESSION_MAX_AGE_MS


def inspect_session(
    cookie_value: Optional[str],
    secret: Optional[str] = None,
    now_ms: Optional[int] = None,
) -> Optional[SessionRejection]:
    """Return why a session is rejected, or None if it is acceptable.

    With `secret` the signature is recomputed (full check); without it only
    the shape and the 24h window are checked (shallow check).
    """
    if not cookie_value:
        return SessionRejection.MISSING
    parsed = _parse_session(cookie_value)
    if parsed is None:
        return SessionRejection.MALFORMED
    raw_timestamp, timestamp, signature = parsed
    if secret is not None and not verify_signature(raw_timestamp, signature, secret):
        return SessionRejection.BAD_SIGNATURE
    if _is_expired(timestamp, now_ms):
        return SessionRejection.EXPIRED
    return None


def verify_session_full(
    cookie_value: Optional[str], secret: str, now_ms: Optional[int] = None
) -> bool:
    """Authoritative check: signature and expiry. Never raises on bad input."""
    rejection = inspect_session(cookie_value, secret, now_ms)
    if rejection is SessionRejection.MISSING:
        return False
    if rejection is not None:
        logger.info(f"Admin session rejected: reason={rejection.value}")
        return False
    return True


def verify_session_shallow(cookie_value: Optional[str], now_ms: Optional[int] = None) -> bool:
    """Cheap edge check: shape and expiry only, no HMAC.

    Not sufficient for privileged operations; those go through verify_session_full.
    """
    rejection = inspect_session(cookie_value, None, now_ms)
    if rejection is not None:
        logger.debug(f"Edge guard rejected session: reason={rejection.value}")
        return False
    return True


# --- Edge guard ---


def is_protected_path(path: str) -> bool:
    if path == LOGIN_PATH or path == LOGOUT_PATH:
        return False
    return path == PROTECTED_PREFIX or path.startswith(PROTECTED_PREFIX + "/")


def edge_redirect(
    path: str, cookie_value: Optional[str], now_ms: Optional[int] = None
) -> Optional[str]:
    """Return the login URL to redirect to, or None to forward the request."""
    if not is_protected_path(path):
        return None
    if verify_session_shallow(cookie_value, now_ms):
        return None
    return LOGIN_PATH


def safe_next_path(next_path: Optional[str]) -> str:
    """Post-login target: only local /admin paths, never the login page itself."""
    target = (next_path or "").strip()
    if target.startswith("//") or "\\" in target:
        return PROTECTED_PREFIX
    if not is_protected_path(target.split("?", 1)[0]):
        return PROTECTED_PREFIX
    return target


# --- Share tokens ---


def issue_share_token(resource_id: str, secret: str) -> str:
    """Deterministic bearer token for one resource (e.g. a project slug)."""
    return sign(resource_id, secret)


def verify_share_token(resource_id: str, presented: Optional[str], secret: str) -> bool:
    """Recompute the token for `resource_id` and compare in constant time."""
    if not isinstance(presented, str) or not presented:
        return False
    return _constant_time_equals(issue_share_token(resource_id, secret), presented)
