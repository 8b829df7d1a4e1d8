"""FastAPI application for the UAT admin.

Exposes:
- /admin/...                          (admin pages, session required)
- GET /api/share-token/{slug}         (session required)
- GET /share/analytics/{slug}/{token} (public, share token required)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
import uvicorn

from .config import UatConfig, get_config
from .database import configure_engine, init_db
from .logging_config import get_logger

from admin import api_router as admin_api_router
from admin import auth as admin_auth
from admin import router as admin_router
from share import router as share_router

logger = get_logger(__name__)


class AdminAuthMiddleware(BaseHTTPMiddleware):
    """Redirect to /admin/login when the admin cookie is missing, malformed or stale.

    Only shape and expiry are checked here; routes still run the full HMAC
    check through `admin.deps.require_admin`.
    """

    async def dispatch(self, request, call_next):
        cookie = request.cookies.get(admin_auth.SESSION_COOKIE_NAME)
        target = admin_auth.edge_redirect(request.url.path, cookie)
        if target is None:
            return await call_next(request)
        if request.method == "GET":
            next_path = request.url.path
            if request.url.query:
                next_path += "?" + request.url.query
            target += "?next=" + quote(next_path, safe="/")
        return RedirectResponse(url=target, status_code=302)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log the first incoming request with full URL for debugging."""

    async def dispatch(self, request, call_next):
        if not getattr(request.app.state, "logged_first_request", False):
            request_logger = logging.getLogger("uat.request")
            user_agent = request.headers.get("user-agent", "")
            client_ip = request.client.host if request.client else "unknown"
            request_logger.info(
                'client_connected ip="%s" url="%s %s" ua="%s"'
                % (client_ip, request.method, request.url.path, user_agent)
            )
            request.app.state.logged_first_request = True
        return await call_next(request)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    # Refuse to serve authenticated traffic without secrets.
    config = get_config()
    configure_engine(config.database_path)
    init_db()
    logger.info("Application startup complete.")
    yield


app = FastAPI(title="UAT Admin", lifespan=_lifespan)
app.add_middleware(AdminAuthMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(admin_router, prefix="/admin")
app.include_router(admin_api_router, prefix="/api")
app.include_router(share_router, prefix="/share")


@app.exception_handler(admin_auth.Unauthorized)
async def unauthorized_handler(request: Request, exc: admin_auth.Unauthorized):
    if request.url.path.startswith("/api/"):
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    return RedirectResponse(url=admin_auth.LOGIN_PATH, status_code=303)


@app.get("/", include_in_schema=False)
def root() -> Response:
    return RedirectResponse(url="/admin", status_code=302)


@app.get("/favicon.ico", include_in_schema=False)
def favicon() -> Response:
    return Response(status_code=204)


def run_server(config: UatConfig, host: str | None = None, port: int | None = None) -> None:
    """Run the app with uvicorn."""
    bind_host = host or config.server_host
    bind_port = port or config.server_port
    logger.info(f"Admin UI at http://{bind_host}:{bind_port}/admin")
    uvicorn.run(app, host=bind_host, port=bind_port, log_config=None)
