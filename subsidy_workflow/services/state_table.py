"""
Workflow State Table: the lifecycle graph of a housing-subsidy case.

Declares, for every stage:
  - the stages reachable in one hop (ordered),
  - the roles authorised to *enter* the stage,
  - the SLA budget in hours,
  - the human label and the named entry requirements.

The table is immutable and validated once at start-up
(``validate_state_table``).  A stage without an entry fails closed:
``successors`` and ``allowed_roles`` return empty tuples, so nothing can
move into or out of it.

Usage:
    from subsidy_workflow.services.state_table import Stage, Role, can_enter

    if Stage.DIRECTOR_REVIEW in successors(Stage.TECHNICAL_REVIEW):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType


# ═════════════════════════════════════════════════════════════════════════════
# Enums
# ═════════════════════════════════════════════════════════════════════════════

class Stage(str, Enum):
    DRAFT = "DRAFT"
    INTAKE_REVIEW = "INTAKE_REVIEW"
    CONTROL_ASSIGN = "CONTROL_ASSIGN"
    CONTROL_VISIT_SCHEDULED = "CONTROL_VISIT_SCHEDULED"
    CONTROL_IN_PROGRESS = "CONTROL_IN_PROGRESS"
    TECHNICAL_REVIEW = "TECHNICAL_REVIEW"
    SOCIAL_REVIEW = "SOCIAL_REVIEW"
    DIRECTOR_REVIEW = "DIRECTOR_REVIEW"
    MINISTER_DECISION = "MINISTER_DECISION"
    CLOSURE = "CLOSURE"
    REJECTED = "REJECTED"
    ON_HOLD = "ON_HOLD"
    NEEDS_MORE_INFO = "NEEDS_MORE_INFO"

    @classmethod
    def parse(cls, value: str | None) -> "Stage | None":
        """Return the Stage for *value*, or None if it names no stage."""
        try:
            return cls(value)
        except ValueError:
            return None


class Role(str, Enum):
    ADMIN = "admin"
    IT = "it"
    STAFF = "staff"
    CONTROL = "control"
    DIRECTOR = "director"
    MINISTER = "minister"
    FRONT_OFFICE = "front_office"
    APPLICANT = "applicant"

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        try:
            return cls(value)
        except ValueError:
            return None


class StateTableError(Exception):
    """Raised at start-up when the state table is incomplete or inconsistent."""


# ═════════════════════════════════════════════════════════════════════════════
# Stage rules
# ═════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StageRule:
    """Static definition of one lifecycle stage."""
    stage: Stage
    next: tuple[Stage, ...]
    roles: frozenset[Role]
    sla_hours: int
    requirements: tuple[str, ...] = field(default=())

    @property
    def is_terminal(self) -> bool:
        return not self.next

    @property
    def label(self) -> str:
        return format_stage_name(self.stage)


S = Stage
_ADMIN_IT = frozenset({Role.ADMIN, Role.IT})

_RULES = (
    StageRule(
        S.DRAFT,
        next=(S.INTAKE_REVIEW,),
        roles=_ADMIN_IT | {Role.STAFF, Role.FRONT_OFFICE},
        sla_hours=72,
    ),
    StageRule(
        S.INTAKE_REVIEW,
        next=(S.CONTROL_ASSIGN, S.REJECTED, S.ON_HOLD),
        roles=_ADMIN_IT | {Role.STAFF, Role.FRONT_OFFICE},
        sla_hours=48,
    ),
    StageRule(
        S.CONTROL_ASSIGN,
        next=(S.CONTROL_VISIT_SCHEDULED, S.ON_HOLD),
        roles=_ADMIN_IT | {Role.CONTROL},
        sla_hours=24,
    ),
    StageRule(
        S.CONTROL_VISIT_SCHEDULED,
        next=(S.CONTROL_IN_PROGRESS,),
        roles=_ADMIN_IT | {Role.CONTROL},
        sla_hours=168,
    ),
    StageRule(
        S.CONTROL_IN_PROGRESS,
        next=(S.TECHNICAL_REVIEW, S.SOCIAL_REVIEW),
        roles=_ADMIN_IT | {Role.CONTROL},
        sla_hours=72,
    ),
    StageRule(
        S.TECHNICAL_REVIEW,
        next=(S.DIRECTOR_REVIEW, S.NEEDS_MORE_INFO, S.ON_HOLD),
        roles=_ADMIN_IT | {Role.STAFF, Role.CONTROL},
        sla_hours=120,
    ),
    StageRule(
        S.SOCIAL_REVIEW,
        next=(S.DIRECTOR_REVIEW, S.NEEDS_MORE_INFO, S.ON_HOLD),
        roles=_ADMIN_IT | {Role.STAFF},
        sla_hours=120,
    ),
    StageRule(
        S.DIRECTOR_REVIEW,
        next=(S.MINISTER_DECISION, S.REJECTED, S.NEEDS_MORE_INFO, S.ON_HOLD),
        roles=_ADMIN_IT | {Role.DIRECTOR},
        sla_hours=168,
        requirements=(
            "All required documents verified",
            "Minimum 8 control photos uploaded",
            "Photos cover EXTERIOR_FRONT, INTERIOR_MAIN, STRUCTURAL_ISSUES, UTILITIES",
            "Technical report submitted with conclusion and recommendations",
            "Social report submitted with conclusion and recommendations",
            "Control visit completed",
        ),
    ),
    StageRule(
        S.MINISTER_DECISION,
        next=(S.CLOSURE, S.REJECTED),
        roles=_ADMIN_IT | {Role.MINISTER},
        sla_hours=240,
        requirements=("Director recommendation provided",),
    ),
    StageRule(S.CLOSURE, next=(), roles=_ADMIN_IT, sla_hours=0),
    StageRule(S.REJECTED, next=(), roles=_ADMIN_IT, sla_hours=0),
    StageRule(
        S.ON_HOLD,
        next=(S.INTAKE_REVIEW, S.CONTROL_ASSIGN, S.TECHNICAL_REVIEW,
              S.SOCIAL_REVIEW, S.DIRECTOR_REVIEW),
        roles=_ADMIN_IT | {Role.DIRECTOR},
        sla_hours=72,
    ),
    StageRule(
        S.NEEDS_MORE_INFO,
        next=(S.INTAKE_REVIEW,),
        roles=_ADMIN_IT | {Role.STAFF, Role.FRONT_OFFICE},
        sla_hours=72,
    ),
)

STATE_TABLE: MappingProxyType = MappingProxyType({rule.stage: rule for rule in _RULES})

TERMINAL_STAGES = frozenset(s for s, rule in STATE_TABLE.items() if rule.is_terminal)
NON_TERMINAL_STAGES = frozenset(STATE_TABLE) - TERMINAL_STAGES


# ── Lookups ──────────────────────────────────────────────────────────────────

def successors(stage: Stage) -> tuple[Stage, ...]:
    """Stages reachable from *stage* in one hop; empty for unknown stages."""
    rule = STATE_TABLE.get(stage)
    return rule.next if rule else ()


def allowed_roles(stage: Stage) -> frozenset[Role]:
    """Roles authorised to move a case *into* *stage*."""
    rule = STATE_TABLE.get(stage)
    return rule.roles if rule else frozenset()


def is_terminal(stage: Stage) -> bool:
    return stage in TERMINAL_STAGES


def can_enter(role: Role | None, stage: Stage) -> bool:
    return role is not None and role in allowed_roles(stage)


def sla_hours(stage: Stage) -> int:
    """SLA budget for *stage*; zero for terminal or unknown stages."""
    rule = STATE_TABLE.get(stage)
    return rule.sla_hours if rule else 0


def sla_deadline(stage: Stage, started_at: datetime) -> datetime | None:
    """Deadline for a step opened at *started_at*; None when the stage has no SLA."""
    hours = sla_hours(stage)
    if hours <= 0:
        return None
    return started_at + timedelta(hours=hours)


def stage_requirements(stage: Stage) -> list[str]:
    rule = STATE_TABLE.get(stage)
    return list(rule.requirements) if rule else []


def format_stage_name(stage: Stage | str) -> str:
    """DIRECTOR_REVIEW → 'Director Review'."""
    value = stage.value if isinstance(stage, Stage) else str(stage)
    return " ".join(word.capitalize() for word in value.split("_"))


# ── Start-up validation ──────────────────────────────────────────────────────

def validate_state_table(table=None) -> None:
    """
    Check the table is exhaustive over ``Stage`` and internally consistent.

    Raises:
        StateTableError listing every defect found.
    """
    table = STATE_TABLE if table is None else table
    problems = []

    missing = [s.value for s in Stage if s not in table]
    if missing:
        problems.append(f"stages without a rule: {', '.join(missing)}")

    for stage, rule in table.items():
        if rule.stage != stage:
            problems.append(f"{stage.value}: rule is registered under the wrong key")
        for nxt in rule.next:
            if not isinstance(nxt, Stage) or nxt not in table:
                problems.append(f"{stage.value}: dangling successor {nxt!r}")
            elif nxt == stage:
                problems.append(f"{stage.value}: self-loop")
        if len(set(rule.next)) != len(rule.next):
            problems.append(f"{stage.value}: duplicate successors")
        if not rule.roles:
            problems.append(f"{stage.value}: no role may enter")
        if rule.sla_hours < 0:
            problems.append(f"{stage.value}: negative SLA")
        if not rule.is_terminal and rule.sla_hours == 0:
            problems.append(f"{stage.value}: non-terminal stage without SLA")

    if problems:
        raise StateTableError("Invalid workflow state table: " + "; ".join(problems))
