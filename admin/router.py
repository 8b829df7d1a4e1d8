"""FastAPI routers for the admin surface: login/logout, projects, share tokens."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field, ValidationError
from sqlmodel import Session

from server.config import get_config
from server.database import get_session
from server.logging_config import get_logger
from server.models import RESPONSE_STATUSES
from server.repository import DuplicateSlugError, Repository

from . import auth as admin_auth
from .deps import is_admin, require_admin

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter(tags=["admin"])
api_router = APIRouter(tags=["api"])


class ProjectCreate(BaseModel):
    company_name: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    test_scenario: Optional[str] = Field(default=None, max_length=2000)


class ChecklistItemForm(BaseModel):
    step_number: int = Field(ge=1)
    actor: str = Field(min_length=1, max_length=200)
    action: str = Field(min_length=1, max_length=5000)
    path: Optional[str] = Field(default=None, max_length=500)
    crm_module: Optional[str] = Field(default=None, max_length=200)


class TesterForm(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ResponseForm(BaseModel):
    item_id: str = Field(min_length=1)
    status: Optional[Literal["Pass", "Fail", "N/A", "Blocked"]] = None
    comment: Optional[str] = Field(default=None, max_length=5000)


def _error_messages(exc: ValidationError) -> list[str]:
    return [f"{err['loc'][0]}: {err['msg']}" for err in exc.errors()]


def share_path(slug: str, token: str) -> str:
    return f"/share/analytics/{slug}/{token}"


# --- Login / Logout ---


@router.get("/login", include_in_schema=False)
def admin_login_get(request: Request, next: str = ""):
    """Login page; redirect straight on if the session already verifies."""
    if is_admin(request):
        return RedirectResponse(url=admin_auth.safe_next_path(next), status_code=302)
    return _login_template(request, next=next)


@router.post("/login", include_in_schema=False)
def admin_login_post(
    request: Request,
    password: str = Form(""),
    next: str = Form(""),
):
    """Check the admin password and set the session cookie on success."""
    if not password:
        return _login_template(request, error="Password is required", next=next)

    auth_config = get_config().admin
    try:
        cookie_value = admin_auth.issue_session(
            password, auth_config.password, auth_config.session_secret
        )
    except admin_auth.InvalidCredentials:
        client_ip = request.client.host if request.client else "unknown"
        logger.warning(f"Failed admin login from {client_ip}")
        return _login_template(request, error="Invalid password", next=next)

    logger.info("Admin signed in")
    response = RedirectResponse(url=admin_auth.safe_next_path(next), status_code=302)
    response.set_cookie(
        key=admin_auth.SESSION_COOKIE_NAME,
        value=cookie_value,
        max_age=admin_auth.SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=auth_config.cookie_secure,
        samesite="lax",
    )
    return response


def _login_template(request: Request, error: str | None = None, next: str = ""):
    return templates.TemplateResponse(
        request,
        "login.html",
        {"title": "UAT Admin", "error": error, "next": next},
    )


@router.post("/logout", include_in_schema=False)
def admin_logout(request: Request):
    """Clear the session cookie and go back to the login page."""
    response = RedirectResponse(url=admin_auth.LOGIN_PATH, status_code=302)
    response.delete_cookie(key=admin_auth.SESSION_COOKIE_NAME, path="/")
    return response


# --- Projects ---


@router.get("", include_in_schema=False, dependencies=[Depends(require_admin)])
@router.get("/", dependencies=[Depends(require_admin)])
def admin_index(request: Request, session: Session = Depends(get_session)):
    """Project index."""
    projects = Repository(session).list_projects()
    return _index_template(request, projects)


def _index_template(
    request: Request,
    projects,
    errors: Optional[list[str]] = None,
    form: Optional[dict] = None,
    status_code: int = 200,
):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "UAT Admin",
            "projects": projects,
            "errors": errors or [],
            "form": form or {},
        },
        status_code=status_code,
    )


@router.post("/projects", dependencies=[Depends(require_admin)])
def admin_create_project(
    request: Request,
    company_name: str = Form(""),
    slug: str = Form(""),
    test_scenario: str = Form(""),
    session: Session = Depends(get_session),
):
    """Create a project, re-rendering the index with errors on bad input."""
    repo = Repository(session)
    form = {"company_name": company_name, "slug": slug, "test_scenario": test_scenario}
    try:
        data = ProjectCreate(
            company_name=company_name.strip(),
            slug=slug.strip(),
            test_scenario=test_scenario.strip() or None,
        )
    except ValidationError as exc:
        return _index_template(
            request, repo.list_projects(), _error_messages(exc), form, status_code=400
        )

    try:
        project = repo.create_project(
            slug=data.slug,
            company_name=data.company_name,
            test_scenario=data.test_scenario,
        )
    except DuplicateSlugError:
        errors = ["A project with this slug already exists"]
        return _index_template(request, repo.list_projects(), errors, form, status_code=400)

    logger.info(f"Created project {project.slug}")
    return RedirectResponse(url=f"/admin/projects/{project.slug}", status_code=303)


def _get_project_or_404(repo: Repository, slug: str):
    project = repo.get_project_by_slug(slug)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _project_template(
    request: Request,
    repo: Repository,
    project,
    errors: Optional[list[str]] = None,
    status_code: int = 200,
):
    token = admin_auth.issue_share_token(project.slug, get_config().admin.session_secret)
    return templates.TemplateResponse(
        request,
        "project.html",
        {
            "title": f"{project.company_name} — UAT Admin",
            "project": project,
            "items": repo.get_checklist_items(project),
            "testers": repo.get_testers(project),
            "statuses": RESPONSE_STATUSES,
            "analytics": repo.project_analytics(project),
            "share_url": str(request.base_url).rstrip("/") + share_path(project.slug, token),
            "errors": errors or [],
        },
        status_code=status_code,
    )


def _back_to(slug: str) -> RedirectResponse:
    return RedirectResponse(url=f"/admin/projects/{slug}", status_code=303)


@router.get("/projects/{slug}", dependencies=[Depends(require_admin)])
def admin_project_detail(request: Request, slug: str, session: Session = Depends(get_session)):
    """Project detail: checklist, testers, analytics and the public share link."""
    repo = Repository(session)
    return _project_template(request, repo, _get_project_or_404(repo, slug))


@router.post("/projects/{slug}/edit", dependencies=[Depends(require_admin)])
def admin_update_project(
    request: Request,
    slug: str,
    company_name: str = Form(""),
    new_slug: str = Form(""),
    test_scenario: str = Form(""),
    session: Session = Depends(get_session),
):
    """Edit a project. Changing the slug invalidates links shared for the old one."""
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    try:
        data = ProjectCreate(
            company_name=company_name.strip(),
            slug=new_slug.strip() or slug,
            test_scenario=test_scenario.strip() or None,
        )
    except ValidationError as exc:
        return _project_template(request, repo, project, _error_messages(exc), status_code=400)

    try:
        repo.update_project(
            project,
            slug=data.slug,
            company_name=data.company_name,
            test_scenario=data.test_scenario,
        )
    except DuplicateSlugError:
        project = _get_project_or_404(repo, slug)
        errors = ["A project with this slug already exists"]
        return _project_template(request, repo, project, errors, status_code=400)

    logger.info(f"Updated project {slug} -> {data.slug}")
    return _back_to(data.slug)


@router.post("/projects/{slug}/delete", dependencies=[Depends(require_admin)])
def admin_delete_project(slug: str, session: Session = Depends(get_session)):
    """Delete a project and everything under it."""
    if not Repository(session).delete_project(slug):
        raise HTTPException(status_code=404, detail="Project not found")
    logger.info(f"Deleted project {slug}")
    return RedirectResponse(url="/admin", status_code=303)


# --- Checklist ---


def _get_item_or_404(repo: Repository, project, item_id: str):
    item = repo.get_checklist_item(project, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    return item


def _checklist_form(step_number: str, actor: str, action: str, path: str, crm_module: str):
    return ChecklistItemForm(
        step_number=step_number.strip(),
        actor=actor.strip(),
        action=action.strip(),
        path=path.strip() or None,
        crm_module=crm_module.strip() or None,
    )


@router.post("/projects/{slug}/items", dependencies=[Depends(require_admin)])
def admin_add_checklist_item(
    request: Request,
    slug: str,
    step_number: str = Form(""),
    actor: str = Form(""),
    action: str = Form(""),
    path: str = Form(""),
    crm_module: str = Form(""),
    session: Session = Depends(get_session),
):
    """Append a step to the project's checklist."""
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    try:
        data = _checklist_form(step_number, actor, action, path, crm_module)
    except ValidationError as exc:
        return _project_template(request, repo, project, _error_messages(exc), status_code=400)

    repo.add_checklist_item(project, **data.model_dump())
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/items/{item_id}/edit", dependencies=[Depends(require_admin)])
def admin_update_checklist_item(
    request: Request,
    slug: str,
    item_id: str,
    step_number: str = Form(""),
    actor: str = Form(""),
    action: str = Form(""),
    path: str = Form(""),
    crm_module: str = Form(""),
    session: Session = Depends(get_session),
):
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    item = _get_item_or_404(repo, project, item_id)
    try:
        data = _checklist_form(step_number, actor, action, path, crm_module)
    except ValidationError as exc:
        return _project_template(request, repo, project, _error_messages(exc), status_code=400)

    repo.update_checklist_item(item, **data.model_dump())
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/items/{item_id}/delete", dependencies=[Depends(require_admin)])
def admin_delete_checklist_item(slug: str, item_id: str, session: Session = Depends(get_session)):
    """Delete a step together with its recorded results."""
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    repo.delete_checklist_item(_get_item_or_404(repo, project, item_id))
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/items/{item_id}/move", dependencies=[Depends(require_admin)])
def admin_move_checklist_item(
    slug: str,
    item_id: str,
    direction: Literal["up", "down"] = Form(...),
    session: Session = Depends(get_session),
):
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    item = _get_item_or_404(repo, project, item_id)
    if repo.move_checklist_item(project, item, -1 if direction == "up" else 1):
        repo.commit()
    return _back_to(slug)


# --- Testers and results ---


def _get_tester_or_404(repo: Repository, project, tester_id: str):
    tester = repo.get_tester(project, tester_id)
    if not tester:
        raise HTTPException(status_code=404, detail="Tester not found")
    return tester


@router.post("/projects/{slug}/testers", dependencies=[Depends(require_admin)])
def admin_add_tester(
    request: Request,
    slug: str,
    name: str = Form(""),
    email: str = Form(""),
    session: Session = Depends(get_session),
):
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    try:
        data = TesterForm(name=name.strip(), email=email.strip())
    except ValidationError as exc:
        return _project_template(request, repo, project, _error_messages(exc), status_code=400)

    repo.add_tester(project, name=data.name, email=data.email)
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/testers/{tester_id}/delete", dependencies=[Depends(require_admin)])
def admin_delete_tester(slug: str, tester_id: str, session: Session = Depends(get_session)):
    """Delete a tester and all of their results."""
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    repo.delete_tester(_get_tester_or_404(repo, project, tester_id))
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/testers/{tester_id}/complete", dependencies=[Depends(require_admin)])
def admin_set_tester_completed(
    slug: str,
    tester_id: str,
    completed: bool = Form(True),
    session: Session = Depends(get_session),
):
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    repo.set_tester_completed(_get_tester_or_404(repo, project, tester_id), completed)
    repo.commit()
    return _back_to(slug)


@router.post("/projects/{slug}/testers/{tester_id}/responses", dependencies=[Depends(require_admin)])
def admin_record_response(
    request: Request,
    slug: str,
    tester_id: str,
    item_id: str = Form(""),
    status: str = Form(""),
    comment: str = Form(""),
    session: Session = Depends(get_session),
):
    """Record (or overwrite) a tester's result for one step."""
    repo = Repository(session)
    project = _get_project_or_404(repo, slug)
    tester = _get_tester_or_404(repo, project, tester_id)
    try:
        data = ResponseForm(item_id=item_id, status=status or None, comment=comment.strip() or None)
    except ValidationError as exc:
        return _project_template(request, repo, project, _error_messages(exc), status_code=400)

    item = _get_item_or_404(repo, project, data.item_id)
    repo.record_response(tester, item, data.status, data.comment)
    repo.commit()
    return _back_to(slug)


# --- API ---


@api_router.get("/share-token/{slug}", dependencies=[Depends(require_admin)])
def api_share_token(slug: str):
    """Share token for the public analytics link of `slug`."""
    token = admin_auth.issue_share_token(slug, get_config().admin.session_secret)
    return {"token": token}
