"""
Housing Subsidy Workflow Engine
Role assignments: written by the user-management service, read here.

Models:
    - UserRole: role granted to a user; a caller acts under exactly one
                active role.
"""

from datetime import datetime, timezone

from subsidy_workflow.models import db


class UserRole(db.Model):
    __tablename__ = "user_roles"
    __table_args__ = (
        db.Index("idx_user_roles_user_active", "user_id", "is_active"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(30), nullable=False, comment="Role enum value")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    assigned_by = db.Column(db.String(64), nullable=True)
    assigned_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        flag = "active" if self.is_active else "inactive"
        return f"<UserRole {self.user_id}: {self.role} ({flag})>"
