"""
Housing Subsidy Workflow Engine
Notification Service: outbox writer.

The engine does not deliver anything.  It inserts ``queued`` Notification
rows that the external delivery service picks up; a delivery outage can
therefore never fail a transition.
"""

import logging

from subsidy_workflow.models import db
from subsidy_workflow.models.notification import Notification
from subsidy_workflow.services.state_table import Role, Stage, format_stage_name

logger = logging.getLogger(__name__)


# Stage → role whose members are told a case is waiting for them
STAGE_NOTIFY_ROLE = {
    Stage.CONTROL_ASSIGN: Role.CONTROL,
    Stage.TECHNICAL_REVIEW: Role.STAFF,
    Stage.SOCIAL_REVIEW: Role.STAFF,
    Stage.DIRECTOR_REVIEW: Role.DIRECTOR,
    Stage.MINISTER_DECISION: Role.MINISTER,
}


class NotificationService:
    """Stateless service class for notification requests."""

    @staticmethod
    def create(*, subject, message="", case_id=None, recipient_id=None,
               target_role=None, stage=None, channel="in_app"):
        """
        Queue a single notification request.

        At least one of ``recipient_id`` / ``target_role`` must be given.
        The row is flushed, not committed; the caller owns the transaction.
        """
        if not recipient_id and not target_role:
            raise ValueError("Notification needs a recipient_id or a target_role")

        notif = Notification(
            case_id=case_id,
            recipient_id=recipient_id,
            target_role=target_role,
            channel=channel,
            subject=subject,
            message=message,
            stage=stage,
            status="queued",
        )
        db.session.add(notif)
        db.session.flush()
        return notif

    @staticmethod
    def request_transition_notification(case, stage: Stage):
        """
        Queue the notification that follows a case entering *stage*.

        Addressed to the case's assignee, the stage's responsible role, or
        both.  Returns None when neither applies.
        """
        role = STAGE_NOTIFY_ROLE.get(stage)
        assignee = case.assignee_id
        if not assignee and role is None:
            return None

        applicant = case.applicant_name or "Unknown Applicant"
        label = format_stage_name(stage)
        if assignee:
            subject = "Application Assignment"
            message = (f"Application {case.application_number} ({applicant}) "
                       f"has been assigned to you for {label}")
        else:
            subject = "New Application Assignment"
            message = (f"Application {case.application_number} ({applicant}) "
                       f"is now ready for {label}")

        notif = NotificationService.create(
            subject=subject,
            message=message,
            case_id=case.id,
            recipient_id=assignee,
            target_role=role.value if role else None,
            stage=stage.value,
        )
        logger.debug("Queued notification %s for case %s (recipient=%s role=%s)",
                     notif.id, case.id, assignee, notif.target_role,
                     extra={"case_id": case.id, "event_type": "notification.queued"})
        return notif

    @staticmethod
    def list_for_case(case_id, status=None):
        """Queued/sent notifications for a case, newest first."""
        q = Notification.query.filter_by(case_id=case_id)
        if status:
            q = q.filter_by(status=status)
        return q.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
