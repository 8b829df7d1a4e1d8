"""Data Access Layer for UAT projects.

Encapsulates database operations using SQLModel/SQLAlchemy. The auth core
never touches this module: share tokens and sessions are derived, not stored.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from .models import RESPONSE_STATUSES, ChecklistItem, Project, Tester, TesterResponse


class DuplicateSlugError(Exception):
    """A project with this slug already exists."""


class Repository:
    """Data access layer over one SQLModel session."""

    def __init__(self, session: Session):
        self.session = session

    def commit(self) -> None:
        """Commit the current transaction. Callers control when to commit."""
        self.session.commit()

    # --- Projects ---

    def list_projects(self) -> List[Project]:
        statement = select(Project).order_by(col(Project.created_at).desc())
        return list(self.session.exec(statement).all())

    def get_project_by_slug(self, slug: str) -> Optional[Project]:
        return self.session.exec(select(Project).where(Project.slug == slug)).first()

    def create_project(
        self, *, slug: str, company_name: str, test_scenario: Optional[str] = None
    ) -> Project:
        """Insert a project and commit. Raises DuplicateSlugError on slug collision."""
        if self.get_project_by_slug(slug) is not None:
            raise DuplicateSlugError(slug)
        project = Project(
            slug=slug,
            company_name=company_name,
            test_scenario=test_scenario or None,
        )
        self.session.add(project)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateSlugError(slug) from exc
        self.session.refresh(project)
        return project

    def update_project(
        self,
        project: Project,
        *,
        slug: str,
        company_name: str,
        test_scenario: Optional[str] = None,
    ) -> Project:
        """Rename or re-describe a project. A new slug changes its share token."""
        if slug != project.slug and self.get_project_by_slug(slug) is not None:
            raise DuplicateSlugError(slug)
        project.slug = slug
        project.company_name = company_name
        project.test_scenario = test_scenario or None
        self.session.add(project)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateSlugError(slug) from exc
        self.session.refresh(project)
        return project

    def delete_project(self, slug: str) -> bool:
        """Delete a project with its checklist, testers and responses."""
        project = self.get_project_by_slug(slug)
        if project is None:
            return False
        self.session.delete(project)
        self.session.commit()
        return True

    # --- Checklist ---

    def add_checklist_item(
        self,
        project: Project,
        *,
        step_number: int,
        actor: str,
        action: str,
        path: Optional[str] = None,
        crm_module: Optional[str] = None,
    ) -> ChecklistItem:
        """Append a step at the end of the project's checklist."""
        last = self.session.exec(
            select(func.max(ChecklistItem.sort_order)).where(
                ChecklistItem.project_id == project.id
            )
        ).first()
        item = ChecklistItem(
            project_id=project.id,
            step_number=step_number,
            actor=actor,
            action=action,
            path=path,
            crm_module=crm_module,
            sort_order=(last or 0) + 1,
        )
        self.session.add(item)
        self.session.flush()
        return item

    def get_checklist_item(self, project: Project, item_id: str) -> Optional[ChecklistItem]:
        statement = select(ChecklistItem).where(
            ChecklistItem.id == item_id, ChecklistItem.project_id == project.id
        )
        return self.session.exec(statement).first()

    def update_checklist_item(
        self,
        item: ChecklistItem,
        *,
        step_number: int,
        actor: str,
        action: str,
        path: Optional[str] = None,
        crm_module: Optional[str] = None,
    ) -> ChecklistItem:
        item.step_number = step_number
        item.actor = actor
        item.action = action
        item.path = path or None
        item.crm_module = crm_module or None
        self.session.add(item)
        self.session.flush()
        return item

    def delete_checklist_item(self, item: ChecklistItem) -> None:
        """Delete a step and the responses recorded against it."""
        self.session.delete(item)
        self.session.flush()

    def move_checklist_item(self, project: Project, item: ChecklistItem, offset: int) -> bool:
        """Swap a step with its neighbour `offset` places away (-1 up, +1 down).

        Returns False when the step is already first/last.
        """
        items = self.get_checklist_items(project)
        index = next(i for i, other in enumerate(items) if other.id == item.id)
        target = index + offset
        if target < 0 or target >= len(items):
            return False
        other = items[target]
        item.sort_order, other.sort_order = other.sort_order, item.sort_order
        if item.sort_order == other.sort_order:
            other.sort_order += offset * -1
        self.session.add(item)
        self.session.add(other)
        self.session.flush()
        return True

    # --- Testers and responses ---

    def add_tester(self, project: Project, *, name: str, email: str) -> Tester:
        tester = Tester(project_id=project.id, name=name, email=email)
        self.session.add(tester)
        self.session.flush()
        return tester

    def get_tester(self, project: Project, tester_id: str) -> Optional[Tester]:
        statement = select(Tester).where(Tester.id == tester_id, Tester.project_id == project.id)
        return self.session.exec(statement).first()

    def set_tester_completed(self, tester: Tester, completed: bool = True) -> None:
        tester.test_completed = completed
        self.session.add(tester)
        self.session.flush()

    def delete_tester(self, tester: Tester) -> None:
        """Delete a tester and all of their responses."""
        self.session.delete(tester)
        self.session.flush()

    def record_response(
        self,
        tester: Tester,
        item: ChecklistItem,
        status: Optional[str],
        comment: Optional[str] = None,
    ) -> TesterResponse:
        """Set a tester's result for one step, replacing any earlier result."""
        if status is not None and status not in RESPONSE_STATUSES:
            raise ValueError(f"Unknown response status: {status}")
        response = self.session.exec(
            select(TesterResponse).where(
                TesterResponse.tester_id == tester.id,
                TesterResponse.checklist_item_id == item.id,
            )
        ).first()
        if response is None:
            response = TesterResponse(tester_id=tester.id, checklist_item_id=item.id)
        response.status = status
        response.comment = comment or None
        response.updated_at = datetime.now(timezone.utc)
        self.session.add(response)
        self.session.flush()
        return response

    def get_checklist_items(self, project: Project) -> List[ChecklistItem]:
        statement = (
            select(ChecklistItem)
            .where(ChecklistItem.project_id == project.id)
            .order_by(ChecklistItem.sort_order)
        )
        return list(self.session.exec(statement).all())

    def get_testers(self, project: Project) -> List[Tester]:
        statement = (
            select(Tester)
            .where(Tester.project_id == project.id)
            .order_by(Tester.created_at)
        )
        return list(self.session.exec(statement).all())

    def get_responses(self, project: Project) -> List[TesterResponse]:
        statement = (
            select(TesterResponse)
            .join(ChecklistItem, TesterResponse.checklist_item_id == ChecklistItem.id)
            .where(ChecklistItem.project_id == project.id)
        )
        return list(self.session.exec(statement).all())

    def project_analytics(self, project: Project) -> dict:
        """Per-step status counts and tester completion for the analytics view."""
        items = self.get_checklist_items(project)
        testers = self.get_testers(project)
        responses = self.get_responses(project)

        by_item: dict[str, Counter] = {item.id: Counter() for item in items}
        for response in responses:
            if response.status and response.checklist_item_id in by_item:
                by_item[response.checklist_item_id][response.status] += 1

        steps = []
        for item in items:
            counts = by_item[item.id]
            steps.append({
                "step_number": item.step_number,
                "actor": item.actor,
                "action": item.action,
                "crm_module": item.crm_module,
                "counts": {status: counts.get(status, 0) for status in RESPONSE_STATUSES},
            })

        totals = Counter()
        for counts in by_item.values():
            totals.update(counts)

        completed = sum(1 for tester in testers if tester.test_completed)
        return {
            "steps": steps,
            "totals": {status: totals.get(status, 0) for status in RESPONSE_STATUSES},
            "tester_count": len(testers),
            "testers_completed": completed,
        }
