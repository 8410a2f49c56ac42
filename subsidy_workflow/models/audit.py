"""
Housing Subsidy Workflow Engine
Audit domain model.

Models:
    - AuditLog: immutable, append-only record of every case stage change.
"""

from datetime import UTC, datetime

from sqlalchemy import event as _sa_event

from subsidy_workflow.models import db


class AuditImmutableError(RuntimeError):
    """Raised when code tries to modify or remove an audit row."""


class AuditLog(db.Model):
    """
    Immutable audit trail for case lifecycle events.

    One row per successful transition: who moved which case from where to
    where, with the notes that closed the previous step.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_case", "case_id"),
        db.Index("idx_audit_actor", "actor_id"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(db.String(36), nullable=False,
                        comment="cases.id (no FK: the trail outlives the row)")

    action = db.Column(db.String(60), nullable=False, default="case.transition")
    from_stage = db.Column(db.String(40), nullable=True)
    to_stage = db.Column(db.String(40), nullable=False)
    actor_id = db.Column(db.String(64), nullable=False, default="system")
    notes = db.Column(db.Text, nullable=True)

    # Timestamp (immutable)
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "action": self.action,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "actor_id": self.actor_id,
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} {self.from_stage}->{self.to_stage} on {self.case_id}>"


@_sa_event.listens_for(AuditLog, "before_update")
def _block_audit_update(mapper, connection, target) -> None:  # noqa: ANN001
    raise AuditImmutableError(f"Audit entry {target.id} is append-only and cannot be updated")


@_sa_event.listens_for(AuditLog, "before_delete")
def _block_audit_delete(mapper, connection, target) -> None:  # noqa: ANN001
    raise AuditImmutableError(f"Audit entry {target.id} is append-only and cannot be deleted")


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    case_id: str,
    to_stage: str,
    from_stage: str | None = None,
    actor_id: str = "system",
    notes: str | None = None,
    action: str = "case.transition",
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) AuditLog instance.
    """
    log = AuditLog(
        case_id=str(case_id),
        action=action,
        from_stage=from_stage,
        to_stage=to_stage,
        actor_id=str(actor_id),
        notes=notes,
    )
    db.session.add(log)
    db.session.flush()
    return log
