"""FastAPI router for public analytics share links.

No session is required: the share token is the credential. A bad token and
an unknown project produce the same 404 so neither leaks the other.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from admin import auth as admin_auth
from admin.router import TEMPLATES_DIR as ADMIN_TEMPLATES_DIR
from server.config import get_config
from server.database import get_session
from server.logging_config import get_logger
from server.repository import Repository

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
# Shares base.html and _analytics.html with the admin pages
templates = Jinja2Templates(directory=[str(TEMPLATES_DIR), str(ADMIN_TEMPLATES_DIR)])

router = APIRouter(tags=["share"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Not found")


@router.get("/analytics/{slug}/{token}")
def shared_analytics(request: Request, slug: str, token: str, session: Session = Depends(get_session)):
    """Read-only analytics for one project, gated by its share token."""
    if not admin_auth.verify_share_token(slug, token, get_config().admin.session_secret):
        logger.info(f"Rejected share token for {slug!r}")
        raise _not_found()

    repo = Repository(session)
    project = repo.get_project_by_slug(slug)
    if not project:
        raise _not_found()

    return templates.TemplateResponse(
        request,
        "analytics.html",
        {
            "title": f"{project.company_name} — UAT Analytics Report",
            "project": project,
            "analytics": repo.project_analytics(project),
        },
    )
