"""
Side-Effect Dispatchers: what follows a committed stage change.

    audit        one AuditLog row per transition
    task         one auto-generated WORKFLOW_STEP task for stages with a template
    notification one queued Notification for the assignee and/or stage role

Dispatch runs only after the transition has committed.  Every effect runs in
its own transaction: on failure it is rolled back and logged, and the next
effect still runs.  Nothing here can unwind the lifecycle change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from subsidy_workflow.models import db
from subsidy_workflow.models.audit import write_audit
from subsidy_workflow.models.task import Task
from subsidy_workflow.services.notification import NotificationService
from subsidy_workflow.services.state_table import Stage, sla_deadline, sla_hours

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskTemplate:
    title: str
    description: str
    priority: int


STAGE_TASK_TEMPLATES = {
    Stage.INTAKE_REVIEW: TaskTemplate(
        "Review Application Intake",
        "Review and validate all application information and documents", 3),
    Stage.CONTROL_ASSIGN: TaskTemplate(
        "Assign Control Inspector",
        "Assign a qualified inspector for property control visit", 3),
    Stage.CONTROL_VISIT_SCHEDULED: TaskTemplate(
        "Conduct Control Visit",
        "Perform on-site property inspection and document findings", 2),
    Stage.TECHNICAL_REVIEW: TaskTemplate(
        "Prepare Technical Report",
        "Analyze technical aspects and prepare comprehensive technical report", 3),
    Stage.SOCIAL_REVIEW: TaskTemplate(
        "Prepare Social Report",
        "Assess social circumstances and prepare social impact report", 3),
    Stage.DIRECTOR_REVIEW: TaskTemplate(
        "Director Review and Recommendation",
        "Review all reports and provide recommendation for ministerial decision", 1),
    Stage.MINISTER_DECISION: TaskTemplate(
        "Ministerial Decision Required",
        "Final decision on subsidy application approval and amount", 1),
}


@dataclass(frozen=True)
class TransitionRecord:
    """What the coordinator committed; input to every dispatcher."""
    case_id: str
    from_stage: Stage
    to_stage: Stage
    actor_id: str
    notes: str | None
    committed_at: datetime


# ── Individual effects ───────────────────────────────────────────────────────

def record_audit(record: TransitionRecord):
    return write_audit(
        case_id=record.case_id,
        from_stage=record.from_stage.value,
        to_stage=record.to_stage.value,
        actor_id=record.actor_id,
        notes=record.notes,
    )


def generate_stage_task(case, stage: Stage, *, now: datetime | None = None):
    """Create the auto-generated task for *stage*; None if it has no template."""
    template = STAGE_TASK_TEMPLATES.get(stage)
    if template is None:
        return None

    now = now or datetime.now(timezone.utc)
    hours = sla_hours(stage)
    task = Task(
        case_id=case.id,
        kind="WORKFLOW_STEP",
        title=template.title,
        description=template.description,
        assignee_id=case.assignee_id,
        assigned_by="system",
        priority=template.priority,
        status="PENDING",
        auto_generated=True,
        sla_hours=hours,
        due_date=sla_deadline(stage, now),
    )
    db.session.add(task)
    db.session.flush()
    return task


# ── Dispatch ─────────────────────────────────────────────────────────────────

def _run_isolated(effect: str, record: TransitionRecord, fn) -> bool:
    try:
        fn()
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        logger.exception(
            "Side effect %s failed for case %s (%s -> %s)",
            effect, record.case_id, record.from_stage.value, record.to_stage.value,
            extra={"case_id": record.case_id, "actor_id": record.actor_id,
                   "event_type": f"side_effect.{effect}.failed"},
        )
        return False


def dispatch_transition_effects(case, record: TransitionRecord) -> dict:
    """
    Fire every dispatcher for a committed transition.

    Returns:
        {effect_name: bool}: whether each effect was persisted.
    """
    results = {
        "audit": _run_isolated("audit", record, lambda: record_audit(record)),
    }
    results["task"] = _run_isolated(
        "task", record,
        lambda: generate_stage_task(case, record.to_stage, now=record.committed_at),
    )
    results["notification"] = _run_isolated(
        "notification", record,
        lambda: NotificationService.request_transition_notification(case, record.to_stage),
    )
    return results
