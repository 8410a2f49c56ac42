"""
Transition Coordinator & workflow queries.

    transition              validate → version-conditioned commit → step rotation → side effects
    validate_transition     dry run of the checks; never writes
    available_transitions   successors the caller's role may enter
    workflow_status         step history + progress
    list_case_audit         audit trail of one case

Check order for a transition (first failure wins):
    1. case exists                        NotFoundError
    2. target is a known successor        InvalidTransitionError
    3. version argument is an integer     ValidationError
    4. caller's single active role        UnauthorizedTransitionError
    5. evidence gates                     PreconditionFailedError(reasons)
    6. version still matches on write     ConflictError

Usage:
    from subsidy_workflow.services import workflow_service as ws

    case = ws.transition(case_id, "TECHNICAL_REVIEW", actor_id="u-17", notes="ok")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from subsidy_workflow.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedTransitionError,
    ValidationError,
)
from subsidy_workflow.models import db
from subsidy_workflow.models.audit import AuditLog
from subsidy_workflow.models.case import Case, CaseStep
from subsidy_workflow.services.preconditions import check_preconditions
from subsidy_workflow.services.role_resolver import resolve_active_role
from subsidy_workflow.services.side_effects import TransitionRecord, dispatch_transition_effects
from subsidy_workflow.services.state_table import (
    NON_TERMINAL_STAGES,
    Stage,
    can_enter,
    format_stage_name,
    is_terminal,
    sla_deadline,
    sla_hours,
    stage_requirements,
    successors,
)

logger = logging.getLogger(__name__)

TOTAL_PROGRESS_STEPS = len(NON_TERMINAL_STAGES)


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def get_case(case_id) -> Case:
    case = db.session.get(Case, str(case_id)) if case_id else None
    if case is None:
        raise NotFoundError(resource="Case", resource_id=case_id)
    return case


def _resolve_target(case: Case, target_stage) -> tuple[Stage | None, InvalidTransitionError | None]:
    """Parse *target_stage*; an unknown name is an invalid move from the current stage."""
    target = target_stage if isinstance(target_stage, Stage) else Stage.parse(target_stage)
    if target is None:
        return None, InvalidTransitionError(case.stage, str(target_stage))
    return target, None


def _parse_version(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("version must be an integer", details={"version": "invalid"})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("version must be an integer", details={"version": "invalid"})


def _edge_error(case: Case, target: Stage) -> InvalidTransitionError | None:
    """Graph check; unknown current stages fail closed."""
    current = case.current_stage
    if current is None:
        return InvalidTransitionError(case.stage, target.value,
                                      f"Case is in unknown stage {case.stage!r}")
    if current == target:
        return InvalidTransitionError(current.value, target.value,
                                      f"Case is already in {current.value}")
    if is_terminal(current):
        return InvalidTransitionError(current.value, target.value,
                                      f"Case is in terminal stage {current.value}")
    if target not in successors(current):
        return InvalidTransitionError(current.value, target.value)
    return None


def _role_error(actor_id: str, target: Stage) -> UnauthorizedTransitionError | None:
    role = resolve_active_role(actor_id)
    if not can_enter(role, target):
        return UnauthorizedTransitionError(actor_id, role.value if role else None, target.value)
    return None


# ═════════════════════════════════════════════════════════════════════════════
# Transition
# ═════════════════════════════════════════════════════════════════════════════

def transition(
    case_id: str,
    target_stage: Stage | str,
    actor_id: str,
    *,
    notes: str | None = None,
    assignee_id: str | None = None,
    expected_version: int | None = None,
) -> Case:
    """
    Move a case into *target_stage*.

    Args:
        case_id: Case to move.
        target_stage: Stage enum or its string value.
        actor_id: Caller's user id; its single active role is checked.
        notes: Stored on the step being closed.
        assignee_id: New assignee; the current one is kept when omitted.
        expected_version: Version the caller read; defaults to the one read here.

    Returns:
        The updated Case (already committed).

    Raises:
        NotFoundError, ValidationError, InvalidTransitionError,
        UnauthorizedTransitionError, PreconditionFailedError, ConflictError
    """
    case = get_case(case_id)
    target, err = _resolve_target(case, target_stage)
    if err:
        raise err
    expected = case.version if expected_version is None else _parse_version(expected_version)

    err = _edge_error(case, target) or _role_error(actor_id, target)
    if err:
        raise err

    current = case.current_stage
    result = check_preconditions(case.id, target, closing_notes=notes, current_stage=current)
    if not result.satisfied:
        raise PreconditionFailedError(result.reasons)

    now = datetime.now(timezone.utc)
    new_assignee = assignee_id or case.assignee_id

    # Compare-and-swap on the version column
    res = db.session.execute(
        update(Case)
        .where(Case.id == case.id, Case.version == expected)
        .values(
            stage=target.value,
            assignee_id=new_assignee,
            sla_deadline=sla_deadline(target, now),
            version=Case.version + 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        db.session.rollback()
        logger.info("Version conflict on case %s (expected v%s)", case_id, expected,
                    extra={"case_id": case_id, "actor_id": actor_id,
                           "event_type": "case.transition.conflict"})
        raise ConflictError("Case", case_id, expected)

    closing = {"completed_at": now}
    if notes is not None:
        closing["notes"] = notes
    CaseStep.query.filter(
        CaseStep.case_id == case.id, CaseStep.completed_at.is_(None),
    ).update(closing, synchronize_session=False)

    db.session.add(CaseStep(
        case_id=case.id,
        stage=target.value,
        started_at=now,
        assignee_id=new_assignee,
        sla_hours=sla_hours(target),
    ))

    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent writer opened a step first
        db.session.rollback()
        raise ConflictError("Case", case_id, expected)

    logger.info(
        "Case %s moved %s -> %s by %s",
        case.id, current.value, target.value, actor_id,
        extra={"case_id": case.id, "actor_id": actor_id, "event_type": "case.transition"},
    )

    dispatch_transition_effects(case, TransitionRecord(
        case_id=case.id,
        from_stage=current,
        to_stage=target,
        actor_id=str(actor_id),
        notes=notes,
        committed_at=now,
    ))
    return case


def validate_transition(
    case_id: str,
    target_stage: Stage | str,
    actor_id: str,
    *,
    notes: str | None = None,
) -> dict:
    """
    Run the transition checks without writing.

    Returns:
        {"valid": bool, "reasons": [str, ...]}

    Raises:
        NotFoundError for an unknown case; every other problem is a reason.
    """
    case = get_case(case_id)
    target, err = _resolve_target(case, target_stage)
    if err:
        return {"valid": False, "reasons": [err.reason]}

    reasons = []
    err = _edge_error(case, target) or _role_error(actor_id, target)
    if err:
        reasons.append(err.reason)

    result = check_preconditions(case.id, target, closing_notes=notes,
                                 current_stage=case.current_stage)
    reasons.extend(result.reasons)
    return {"valid": not reasons, "reasons": reasons}


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════

def available_transitions(case_id: str, actor_id: str) -> dict:
    """Successors of the current stage that the caller's role may enter.

    Requirements are named, not evaluated.
    """
    case = get_case(case_id)
    current = case.current_stage
    role = resolve_active_role(actor_id)

    transitions = []
    if current is not None:
        for stage in successors(current):
            if can_enter(role, stage):
                transitions.append({
                    "stage": stage.value,
                    "label": format_stage_name(stage),
                    "requirements": stage_requirements(stage),
                })
    return {
        "case_id": case.id,
        "current_stage": case.stage,
        "transitions": transitions,
    }


def workflow_status(case_id: str) -> dict:
    """Step history and progress percentage (capped at 100)."""
    case = get_case(case_id)
    steps = case.steps.all()
    completed = sum(1 for s in steps if s.completed_at is not None)
    total = TOTAL_PROGRESS_STEPS
    progress = round(100 * min(completed, total) / total)
    return {
        "case_id": case.id,
        "current_stage": case.stage,
        "progress": progress,
        "completed_steps": completed,
        "total_steps": total,
        "steps": [s.to_dict() for s in steps],
    }


def list_case_audit(case_id: str) -> list[AuditLog]:
    case = get_case(case_id)
    return (
        AuditLog.query
        .filter_by(case_id=case.id)
        .order_by(AuditLog.timestamp, AuditLog.id)
        .all()
    )
