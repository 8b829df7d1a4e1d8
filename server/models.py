"""SQLModel database models for UAT projects, checklists and tester responses."""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel

RESPONSE_STATUSES = ("Pass", "Fail", "N/A", "Blocked")


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectBase(SQLModel):
    slug: str = Field(unique=True, index=True)
    company_name: str
    test_scenario: Optional[str] = None


class Project(ProjectBase, table=True):
    __tablename__ = "projects"
    id: str = Field(default_factory=_new_id, primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow)

    items: List["ChecklistItem"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
    testers: List["Tester"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ChecklistItemBase(SQLModel):
    step_number: int
    path: Optional[str] = None
    actor: str
    action: str
    crm_module: Optional[str] = None
    sort_order: int = 0


class ChecklistItem(ChecklistItemBase, table=True):
    __tablename__ = "checklist_items"
    id: str = Field(default_factory=_new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)

    project: Optional[Project] = Relationship(back_populates="items")
    responses: List["TesterResponse"] = Relationship(
        back_populates="item",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class TesterBase(SQLModel):
    name: str
    email: str
    test_completed: bool = False


class Tester(TesterBase, table=True):
    __tablename__ = "testers"
    id: str = Field(default_factory=_new_id, primary_key=True)
    project_id: str = Field(foreign_key="projects.id", index=True)
    created_at: datetime = Field(default_factory=_utcnow)

    project: Optional[Project] = Relationship(back_populates="testers")
    responses: List["TesterResponse"] = Relationship(
        back_populates="tester",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class TesterResponse(SQLModel, table=True):
    __tablename__ = "responses"
    id: str = Field(default_factory=_new_id, primary_key=True)
    tester_id: str = Field(foreign_key="testers.id", index=True)
    checklist_item_id: str = Field(foreign_key="checklist_items.id", index=True)
    status: Optional[str] = None  # one of RESPONSE_STATUSES, None while untested
    comment: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)

    tester: Optional[Tester] = Relationship(back_populates="responses")
    item: Optional[ChecklistItem] = Relationship(back_populates="responses")
