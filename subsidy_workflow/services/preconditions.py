"""
Precondition Evaluator: evidence gates for sensitive stages.

Each gate is a small function ``(ctx) -> str | None`` returning the failure
reason, or None when satisfied.  Gates are grouped per target stage and all
of them run, so a rejected transition lists every missing piece of evidence
in rule order.

Gates only read evidence tables; they never write.

Usage:
    from subsidy_workflow.services.preconditions import check_preconditions

    result = check_preconditions(case_id, Stage.DIRECTOR_REVIEW)
    if not result.satisfied:
        raise PreconditionFailedError(result.reasons)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from subsidy_workflow.models import db
from subsidy_workflow.models.case import Case, CaseStep
from subsidy_workflow.models.evidence import (
    ControlPhoto,
    ControlVisit,
    Document,
    SocialReport,
    TechnicalReport,
)
from subsidy_workflow.services.state_table import Stage

logger = logging.getLogger(__name__)


MIN_CONTROL_PHOTOS = 8
REQUIRED_PHOTO_CATEGORIES = ("EXTERIOR_FRONT", "INTERIOR_MAIN", "STRUCTURAL_ISSUES", "UTILITIES")


@dataclass(frozen=True)
class PreconditionResult:
    satisfied: bool
    reasons: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _GateContext:
    case_id: str
    current_stage: Stage | None
    closing_notes: str | None


def _blank(text) -> bool:
    return not (text or "").strip()


# ═════════════════════════════════════════════════════════════════════════════
# DIRECTOR_REVIEW gates
# ═════════════════════════════════════════════════════════════════════════════

def _required_documents_verified(ctx: _GateContext) -> str | None:
    pending = (
        Document.query
        .filter_by(case_id=ctx.case_id, is_required=True)
        .filter(Document.verification_status != "VERIFIED")
        .order_by(Document.created_at, Document.id)
        .all()
    )
    if pending:
        names = ", ".join(doc.document_name for doc in pending)
        return f"Required documents not verified: {names}"
    return None


def _minimum_photo_count(ctx: _GateContext) -> str | None:
    count = ControlPhoto.query.filter_by(case_id=ctx.case_id).count()
    if count < MIN_CONTROL_PHOTOS:
        return (f"Minimum {MIN_CONTROL_PHOTOS} photos required from control visit "
                f"(currently {count})")
    return None


def _photo_categories_covered(ctx: _GateContext) -> str | None:
    present = {
        row[0]
        for row in db.session.query(ControlPhoto.photo_category)
        .filter(ControlPhoto.case_id == ctx.case_id)
        .distinct()
    }
    missing = [cat for cat in REQUIRED_PHOTO_CATEGORIES if cat not in present]
    if missing:
        return f"Missing required photo categories: {', '.join(missing)}"
    return None


def _latest(model, case_id):
    return (
        model.query
        .filter_by(case_id=case_id)
        .order_by(model.created_at.desc(), model.id.desc())
        .first()
    )


def _technical_report_complete(ctx: _GateContext) -> str | None:
    report = _latest(TechnicalReport, ctx.case_id)
    if report is None:
        return "Technical assessment report is required before director review"
    if _blank(report.technical_conclusion) or _blank(report.recommendations):
        return "Technical report must include conclusion and recommendations"
    return None


def _social_report_complete(ctx: _GateContext) -> str | None:
    report = _latest(SocialReport, ctx.case_id)
    if report is None:
        return "Social assessment report is required before director review"
    if _blank(report.social_conclusion) or _blank(report.recommendations):
        return "Social report must include conclusion and recommendations"
    return None


def _control_visit_completed(ctx: _GateContext) -> str | None:
    done = (
        ControlVisit.query
        .filter_by(case_id=ctx.case_id, visit_status="COMPLETED")
        .first()
    )
    if done is None:
        return "Control visit must be completed before director review"
    return None


# ═════════════════════════════════════════════════════════════════════════════
# MINISTER_DECISION gates
# ═════════════════════════════════════════════════════════════════════════════

def _director_recommendation_recorded(ctx: _GateContext) -> str | None:
    # The request's notes close the open DIRECTOR_REVIEW step.
    if ctx.current_stage == Stage.DIRECTOR_REVIEW and not _blank(ctx.closing_notes):
        return None

    step = (
        CaseStep.query
        .filter_by(case_id=ctx.case_id, stage=Stage.DIRECTOR_REVIEW.value)
        .filter(CaseStep.completed_at.isnot(None))
        .order_by(CaseStep.completed_at.desc(), CaseStep.id.desc())
        .first()
    )
    if step is None or _blank(step.notes):
        return "Director recommendation is required before minister decision"
    return None


_GATES = {
    Stage.DIRECTOR_REVIEW: (
        _required_documents_verified,
        _minimum_photo_count,
        _photo_categories_covered,
        _technical_report_complete,
        _social_report_complete,
        _control_visit_completed,
    ),
    Stage.MINISTER_DECISION: (
        _director_recommendation_recorded,
    ),
}


def has_preconditions(target_stage: Stage) -> bool:
    return target_stage in _GATES


def check_preconditions(
    case_id: str,
    target_stage: Stage,
    *,
    closing_notes: str | None = None,
    current_stage: Stage | None = None,
) -> PreconditionResult:
    """
    Evaluate every gate registered for *target_stage*.

    Args:
        case_id: Case being moved.
        target_stage: Stage the case would enter.
        closing_notes: Notes the transition request would store on the step
            it closes.
        current_stage: Stage the case is in now; read from the store when
            omitted.

    Returns:
        PreconditionResult; ``reasons`` holds every failing gate's message
        in rule order.  Stages without gates are always satisfied.
    """
    gates = _GATES.get(target_stage, ())
    if not gates:
        return PreconditionResult(satisfied=True)

    if current_stage is None:
        case = db.session.get(Case, case_id)
        current_stage = case.current_stage if case else None

    ctx = _GateContext(case_id=case_id, current_stage=current_stage, closing_notes=closing_notes)
    reasons = [reason for reason in (gate(ctx) for gate in gates) if reason]

    if reasons:
        logger.debug("Preconditions for %s on case %s failed: %s",
                     target_stage.value, case_id, reasons,
                     extra={"case_id": case_id})
    return PreconditionResult(satisfied=not reasons, reasons=reasons)
