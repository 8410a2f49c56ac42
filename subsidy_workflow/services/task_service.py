"""
Task Service: ad hoc tasks, listing and completion.

Workflow tasks are created by the side-effect dispatcher; this module covers
everything an operator does with tasks afterwards.  Completion is
independent of the case's stage.
"""

import logging
from datetime import datetime, timezone

from subsidy_workflow.core.exceptions import NotFoundError, ValidationError
from subsidy_workflow.models import db
from subsidy_workflow.models.case import Case
from subsidy_workflow.models.task import (
    TASK_CLOSED_STATUSES,
    TASK_KINDS,
    TASK_PRIORITY_DEFAULT,
    TASK_PRIORITY_MAX,
    TASK_PRIORITY_MIN,
    TASK_STATUSES,
    Task,
)
from subsidy_workflow.utils.helpers import parse_datetime_input, parse_int_input

logger = logging.getLogger(__name__)


def create_task(data: dict, actor_id: str) -> Task:
    """
    Create an operator task (``auto_generated = False``).

    Required: case_id, title.  Optional: kind (default AD_HOC), description,
    assignee_id, priority (1–5), due_date (ISO-8601), sla_hours.
    """
    case_id = data.get("case_id")
    if not case_id:
        raise ValidationError("case_id is required", details={"case_id": "required"})
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})
    if db.session.get(Case, str(case_id)) is None:
        raise ValidationError(f"Case {case_id} does not exist", details={"case_id": "unknown"})

    kind = data.get("kind") or "AD_HOC"
    if kind not in TASK_KINDS:
        raise ValidationError(f"Invalid task kind: {kind}",
                              details={"kind": f"must be one of {sorted(TASK_KINDS)}"})

    try:
        priority = parse_int_input(data.get("priority", TASK_PRIORITY_DEFAULT), "priority")
    except ValueError as exc:
        raise ValidationError(str(exc), details={"priority": "invalid"})
    if not TASK_PRIORITY_MIN <= priority <= TASK_PRIORITY_MAX:
        raise ValidationError(
            f"priority must be between {TASK_PRIORITY_MIN} and {TASK_PRIORITY_MAX}",
            details={"priority": "out of range"},
        )

    try:
        due_date = parse_datetime_input(data.get("due_date"))
    except ValueError as exc:
        raise ValidationError(str(exc), details={"due_date": "invalid"})

    sla = data.get("sla_hours")
    if sla is not None:
        try:
            sla = parse_int_input(sla, "sla_hours")
        except ValueError as exc:
            raise ValidationError(str(exc), details={"sla_hours": "invalid"})
        if sla < 0:
            raise ValidationError("sla_hours must not be negative", details={"sla_hours": "invalid"})

    task = Task(
        case_id=str(case_id),
        kind=kind,
        title=title,
        description=data.get("description") or "",
        assignee_id=data.get("assignee_id"),
        assigned_by=str(actor_id),
        priority=priority,
        status="PENDING",
        auto_generated=False,
        sla_hours=sla,
        due_date=due_date,
    )
    db.session.add(task)
    db.session.commit()
    logger.info("Task %s created on case %s by %s", task.id, case_id, actor_id,
                extra={"case_id": str(case_id), "actor_id": str(actor_id),
                       "event_type": "task.created"})
    return task


def list_tasks(case_id=None, assignee_id=None, status=None) -> list[Task]:
    """Tasks matching every given filter, newest first."""
    if status and status not in TASK_STATUSES:
        raise ValidationError(f"Invalid status: {status}",
                              details={"status": f"must be one of {sorted(TASK_STATUSES)}"})
    q = Task.query
    if case_id:
        q = q.filter_by(case_id=str(case_id))
    if assignee_id:
        q = q.filter_by(assignee_id=str(assignee_id))
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Task.created_at.desc(), Task.id.desc()).all()


def complete_task(task_id, notes: str | None = None) -> Task:
    """
    Mark a task COMPLETED.

    Notes are appended to the description as ``Completion Notes``.

    Raises:
        NotFoundError if the task does not exist.
        ValidationError if it is already COMPLETED or CANCELLED.
    """
    try:
        pk = parse_int_input(task_id, "task_id")
    except ValueError as exc:
        raise ValidationError(str(exc), details={"task_id": "invalid"})

    task = db.session.get(Task, pk)
    if task is None:
        raise NotFoundError(resource="Task", resource_id=task_id)
    if task.status in TASK_CLOSED_STATUSES:
        raise ValidationError(f"Task {task.id} is already {task.status}",
                              details={"status": task.status})

    task.status = "COMPLETED"
    task.completed_at = datetime.now(timezone.utc)
    if notes:
        task.description = f"{task.description or ''}\n\nCompletion Notes: {notes}"
    db.session.commit()
    logger.info("Task %s completed", task.id,
                extra={"case_id": task.case_id, "event_type": "task.completed"})
    return task
