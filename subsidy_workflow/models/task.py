"""
Housing Subsidy Workflow Engine
Task domain model.

Models:
    - Task: unit of work for a human on a case; either auto-generated by a
            stage transition (WORKFLOW_STEP) or created by an operator (AD_HOC).

Lifecycle:
    PENDING → IN_PROGRESS → COMPLETED
    OVERDUE / CANCELLED are set by external collaborators (SLA alerting,
    operators); the engine only creates and completes tasks.
"""

from datetime import datetime, timezone

from subsidy_workflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TASK_KINDS = {"WORKFLOW_STEP", "AD_HOC"}

TASK_STATUSES = {"PENDING", "IN_PROGRESS", "COMPLETED", "OVERDUE", "CANCELLED"}

# Statuses a task can no longer be completed from
TASK_CLOSED_STATUSES = {"COMPLETED", "CANCELLED"}

TASK_PRIORITY_MIN = 1   # most urgent
TASK_PRIORITY_MAX = 5
TASK_PRIORITY_DEFAULT = 3


def _utcnow():
    return datetime.now(timezone.utc)


class Task(db.Model):
    """Work item attached to a case."""

    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("idx_tasks_case_status", "case_id", "status"),
        db.Index("idx_tasks_assignee_status", "assignee_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    kind = db.Column(db.String(20), nullable=False, default="AD_HOC",
                     comment="WORKFLOW_STEP | AD_HOC")
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")

    assignee_id = db.Column(db.String(64), nullable=True)
    assigned_by = db.Column(db.String(64), nullable=True,
                            comment="Actor id, or 'system' for auto-generated tasks")
    priority = db.Column(db.Integer, nullable=False, default=TASK_PRIORITY_DEFAULT)
    status = db.Column(db.String(20), nullable=False, default="PENDING")
    auto_generated = db.Column(db.Boolean, nullable=False, default=False)

    sla_hours = db.Column(db.Integer, nullable=True)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "case_id": self.case_id,
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "assignee_id": self.assignee_id,
            "assigned_by": self.assigned_by,
            "priority": self.priority,
            "status": self.status,
            "auto_generated": self.auto_generated,
            "sla_hours": self.sla_hours,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Task {self.id}: {self.title[:40]} [{self.status}]>"
