"""
Housing Subsidy Workflow Engine
Notification request model.

Models:
    - Notification: outbox row describing a message the external delivery
                    service should send.  Addressed to a user, a role, or both.
"""

from datetime import datetime, timezone

from subsidy_workflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_CHANNELS = {"in_app", "email", "sms"}
NOTIFICATION_STATUSES = {"queued", "sent", "failed"}


class Notification(db.Model):
    """
    Notification request emitted by the workflow engine.

    Delivery (and the ``sent``/``failed`` status update) belongs to the
    notification service; the engine only inserts ``queued`` rows.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        db.CheckConstraint(
            "recipient_id IS NOT NULL OR target_role IS NOT NULL",
            name="ck_notifications_addressed",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=True, index=True,
    )
    recipient_id = db.Column(db.String(64), nullable=True, index=True,
                             comment="User to notify directly")
    target_role = db.Column(db.String(30), nullable=True, index=True,
                            comment="Role whose members should be notified")
    channel = db.Column(db.String(20), nullable=False, default="in_app")
    subject = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    stage = db.Column(db.String(40), nullable=True, comment="Stage the case entered")
    status = db.Column(db.String(20), nullable=False, default="queued")

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "case_id": self.case_id,
            "recipient_id": self.recipient_id,
            "target_role": self.target_role,
            "channel": self.channel,
            "subject": self.subject,
            "message": self.message,
            "stage": self.stage,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.subject[:40]}>"
