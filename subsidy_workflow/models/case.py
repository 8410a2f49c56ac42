"""
Housing Subsidy Workflow Engine
Case store: the workflow state of each subsidy application.

Models:
    - Case:      one application; current stage, assignee, SLA deadline,
                 version marker for optimistic concurrency.
    - CaseStep:  one stage-occupancy interval (history).

Architecture:
    Case ──1:N──▶ CaseStep   (time ordered, at most one active)
    Case ──1:N──▶ Task       (see models/task.py)

The ``stage`` column is written only by the workflow coordinator
(services/workflow_service.py).  Cases are never deleted by the engine.
"""

import uuid
from datetime import datetime, timezone

from subsidy_workflow.models import db
from subsidy_workflow.services.state_table import Stage


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Case(db.Model):
    """
    Housing-subsidy application as seen by the workflow engine.

    ``version`` starts at 1 and is bumped by every successful transition;
    the coordinator only writes when the persisted version still matches the
    one it read.
    """

    __tablename__ = "cases"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    application_number = db.Column(db.String(40), unique=True, nullable=False)
    applicant_name = db.Column(db.String(200), nullable=True)

    stage = db.Column(
        db.String(40), nullable=False, default=Stage.DRAFT.value, index=True,
        comment="Stage enum value; mutated only by the workflow coordinator",
    )
    assignee_id = db.Column(db.String(64), nullable=True, index=True)
    sla_deadline = db.Column(db.DateTime(timezone=True), nullable=True)

    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    steps = db.relationship(
        "CaseStep", backref="case", lazy="dynamic",
        order_by=lambda: [CaseStep.started_at, CaseStep.id],
    )

    @property
    def current_stage(self) -> Stage | None:
        return Stage.parse(self.stage)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "application_number": self.application_number,
            "applicant_name": self.applicant_name,
            "stage": self.stage,
            "assignee_id": self.assignee_id,
            "sla_deadline": _iso(self.sla_deadline),
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Case {self.application_number}: {self.stage} v{self.version}>"


class CaseStep(db.Model):
    """
    One interval during which a case occupied a stage.

    Opened when the case enters the stage, closed (``completed_at`` set) when
    it leaves.  The partial unique index keeps a single open step per case.
    """

    __tablename__ = "case_steps"
    __table_args__ = (
        db.Index(
            "uq_case_steps_one_active", "case_id",
            unique=True,
            sqlite_where=db.text("completed_at IS NULL"),
            postgresql_where=db.text("completed_at IS NULL"),
        ),
        db.Index("idx_case_steps_case_stage", "case_id", "stage"),
    )

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    stage = db.Column(db.String(40), nullable=False)
    started_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    assignee_id = db.Column(db.String(64), nullable=True)
    sla_hours = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "stage": self.stage,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "is_active": self.is_active,
            "assignee_id": self.assignee_id,
            "sla_hours": self.sla_hours,
            "notes": self.notes,
        }

    def __repr__(self):
        state = "active" if self.is_active else "closed"
        return f"<CaseStep {self.id}: {self.stage} ({state})>"
