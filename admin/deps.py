"""FastAPI dependencies that gate privileged operations on a fully verified session."""

from __future__ import annotations

from fastapi import Request

from server.config import get_config
from server.logging_config import get_logger

from . import auth as admin_auth

logger = get_logger(__name__)


def is_admin(request: Request) -> bool:
    """Full HMAC + expiry check of the request's admin session cookie."""
    cookie = request.cookies.get(admin_auth.SESSION_COOKIE_NAME)
    return admin_auth.verify_session_full(cookie, get_config().admin.session_secret)


def require_admin(request: Request) -> None:
    """Raise Unauthorized before the route body runs unless the session verifies.

    The edge middleware only checks shape and expiry; this is the real gate.
    """
    cookie = request.cookies.get(admin_auth.SESSION_COOKIE_NAME)
    rejection = admin_auth.inspect_session(cookie, get_config().admin.session_secret)
    if rejection is not None:
        logger.warning(
            f"Unauthorized {request.method} {request.url.path}: reason={rejection.value}"
        )
        raise admin_auth.Unauthorized(rejection)
