"""Tests for the project repository and analytics summary."""

import pytest
from sqlmodel import Session, create_engine, select

from server.database import init_db
from server.models import ChecklistItem, TesterResponse
from server.repository import DuplicateSlugError, Repository


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Create a test database."""
    db_file = tmp_path / "test.db"
    monkeypatch.setattr("server.database.DB_PATH", db_file, raising=True)

    engine = create_engine(f"sqlite:///{db_file}", connect_args={"check_same_thread": False})
    monkeypatch.setattr("server.database.engine", engine, raising=True)

    init_db()
    return engine


def test_duplicate_slug_raises(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        repo.create_project(slug="acme-q1", company_name="Acme")
        with pytest.raises(DuplicateSlugError):
            repo.create_project(slug="acme-q1", company_name="Acme again")


def test_project_analytics_counts_statuses(test_db):
    """Test that responses are tallied per step and in total."""
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        login = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        submit = repo.add_checklist_item(project, step_number=2, actor="Agent", action="Submit form")
        ana = repo.add_tester(project, name="Ana", email="ana@example.com")
        ben = repo.add_tester(project, name="Ben", email="ben@example.com")
        ben.test_completed = True
        repo.record_response(ana, login, "Pass")
        repo.record_response(ben, login, "Fail")
        repo.record_response(ana, submit, "Blocked")
        repo.record_response(ben, submit, None)
        repo.commit()

        analytics = repo.project_analytics(project)

    assert analytics["tester_count"] == 2
    assert analytics["testers_completed"] == 1
    assert analytics["totals"] == {"Pass": 1, "Fail": 1, "N/A": 0, "Blocked": 1}
    assert [step["step_number"] for step in analytics["steps"]] == [1, 2]
    assert analytics["steps"][0]["counts"]["Fail"] == 1
    assert analytics["steps"][1]["counts"]["Blocked"] == 1


def test_record_response_rejects_unknown_status(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        item = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        tester = repo.add_tester(project, name="Ana", email="ana@example.com")
        with pytest.raises(ValueError):
            repo.record_response(tester, item, "Maybe")


def test_delete_project_cascades(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        item = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        tester = repo.add_tester(project, name="Ana", email="ana@example.com")
        repo.record_response(tester, item, "Pass")
        repo.commit()

        assert repo.delete_project("acme-q1") is True
        assert repo.get_project_by_slug("acme-q1") is None
        assert session.exec(select(ChecklistItem)).all() == []
        assert session.exec(select(TesterResponse)).all() == []
        assert repo.delete_project("acme-q1") is False


def test_update_project_refuses_taken_slug(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        repo.create_project(slug="globex", company_name="Globex")
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        with pytest.raises(DuplicateSlugError):
            repo.update_project(project, slug="globex", company_name="Acme")
        assert repo.get_project_by_slug("acme-q1") is not None


def test_update_project_keeps_own_slug(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        repo.update_project(project, slug="acme-q1", company_name="Acme Corp", test_scenario="")
        assert project.company_name == "Acme Corp"
        assert project.test_scenario is None


def test_move_checklist_item_swaps_neighbours(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        first = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        second = repo.add_checklist_item(project, step_number=2, actor="Agent", action="Submit")
        third = repo.add_checklist_item(project, step_number=3, actor="Agent", action="Log out")

        assert repo.move_checklist_item(project, third, -1) is True
        assert [i.action for i in repo.get_checklist_items(project)] == ["Log in", "Log out", "Submit"]

        assert repo.move_checklist_item(project, first, -1) is False
        assert repo.move_checklist_item(project, second, 1) is False


def test_record_response_replaces_earlier_result(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        item = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        tester = repo.add_tester(project, name="Ana", email="ana@example.com")
        repo.record_response(tester, item, "Fail", "Spinner never stops")
        repo.record_response(tester, item, "Pass")
        repo.commit()

        responses = session.exec(select(TesterResponse)).all()
    assert [(r.status, r.comment) for r in responses] == [("Pass", None)]


def test_delete_tester_removes_their_responses(test_db):
    with Session(test_db) as session:
        repo = Repository(session)
        project = repo.create_project(slug="acme-q1", company_name="Acme")
        item = repo.add_checklist_item(project, step_number=1, actor="Agent", action="Log in")
        tester = repo.add_tester(project, name="Ana", email="ana@example.com")
        repo.record_response(tester, item, "Pass")
        repo.commit()

        repo.delete_tester(tester)
        repo.commit()
        assert repo.get_testers(project) == []
        assert session.exec(select(TesterResponse)).all() == []
