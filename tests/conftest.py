"""
Shared pytest fixtures for the workflow engine test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: table creation/teardown (session-scoped)
    - session: per-test rollback + table recreate (autouse)
    - client: Flask test client
    - make_case: factory for a Case parked in any stage (with its open step)
    - grant_role: factory for an active UserRole
    - add_director_evidence: factory for the full DIRECTOR_REVIEW evidence set
"""

from datetime import datetime, timedelta, timezone

import pytest

from subsidy_workflow import create_app
from subsidy_workflow.models import db as _db
from subsidy_workflow.models.auth import UserRole
from subsidy_workflow.models.case import Case, CaseStep
from subsidy_workflow.models.evidence import (
    ControlPhoto,
    ControlVisit,
    Document,
    SocialReport,
    TechnicalReport,
)
from subsidy_workflow.services.state_table import Stage, sla_hours


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── ORM helper factories (bypass the coordinator to set any start state) ──


@pytest.fixture()
def make_case():
    counter = {"n": 0}

    def _make(stage=Stage.DRAFT, *, assignee_id=None, applicant_name="Ana Rivera",
              version=1, with_step=True):
        counter["n"] += 1
        stage = Stage(stage)
        now = datetime.now(timezone.utc)
        case = Case(
            application_number=f"HS-2026-{counter['n']:04d}",
            applicant_name=applicant_name,
            stage=stage.value,
            assignee_id=assignee_id,
            version=version,
        )
        _db.session.add(case)
        _db.session.flush()
        if with_step:
            _db.session.add(CaseStep(
                case_id=case.id,
                stage=stage.value,
                started_at=now - timedelta(hours=1),
                assignee_id=assignee_id,
                sla_hours=sla_hours(stage),
            ))
        _db.session.commit()
        return case

    return _make


@pytest.fixture()
def grant_role():
    def _grant(user_id, role, *, is_active=True):
        row = UserRole(user_id=user_id, role=getattr(role, "value", role), is_active=is_active)
        _db.session.add(row)
        _db.session.commit()
        return row

    return _grant


PHOTO_SET = (
    "EXTERIOR_FRONT", "EXTERIOR_BACK", "INTERIOR_MAIN", "INTERIOR_ROOMS",
    "STRUCTURAL_ISSUES", "UTILITIES", "EXTERIOR_SIDES", "OTHER",
)


@pytest.fixture()
def add_director_evidence():
    """Attach evidence to a case; every piece can be switched off or degraded."""

    def _add(case, *, photos=PHOTO_SET, documents=True, technical=True, social=True,
             visit_status="COMPLETED"):
        if documents:
            _db.session.add_all([
                Document(case_id=case.id, document_name="ID Card",
                         document_type="IDENTITY", is_required=True,
                         verification_status="VERIFIED"),
                Document(case_id=case.id, document_name="Property Deed",
                         document_type="PROPERTY", is_required=True,
                         verification_status="VERIFIED"),
                Document(case_id=case.id, document_name="Utility Bill",
                         document_type="OTHER", is_required=False,
                         verification_status="PENDING"),
            ])
        for category in photos:
            _db.session.add(ControlPhoto(case_id=case.id, photo_category=category,
                                         file_path=f"/photos/{category.lower()}.jpg"))
        if technical:
            _db.session.add(TechnicalReport(case_id=case.id,
                                            technical_conclusion="Roof needs replacement",
                                            recommendations="Approve structural grant",
                                            submitted_at=datetime.now(timezone.utc)))
        if social:
            _db.session.add(SocialReport(case_id=case.id,
                                         social_conclusion="Household of five, low income",
                                         recommendations="Priority support",
                                         submitted_at=datetime.now(timezone.utc)))
        if visit_status:
            _db.session.add(ControlVisit(case_id=case.id, visit_status=visit_status,
                                         actual_date=datetime.now(timezone.utc)))
        _db.session.commit()

    return _add
