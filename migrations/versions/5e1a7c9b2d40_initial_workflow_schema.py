"""initial_workflow_schema

Cases, case steps (one active step per case), tasks, append-only audit log,
notification outbox, and the read-only evidence / role tables the engine
consults.

Revision ID: 5e1a7c9b2d40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "5e1a7c9b2d40"
down_revision = None
branch_labels = None
depends_on = None


def _table_names(bind) -> set[str]:
    return set(sa.inspect(bind).get_table_names())


def _case_fk():
    return sa.ForeignKey("cases.id", ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    existing = _table_names(bind)

    if "cases" not in existing:
        op.create_table(
            "cases",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("application_number", sa.String(40), nullable=False, unique=True),
            sa.Column("applicant_name", sa.String(200), nullable=True),
            sa.Column("stage", sa.String(40), nullable=False, server_default="DRAFT"),
            sa.Column("assignee_id", sa.String(64), nullable=True),
            sa.Column("sla_deadline", sa.DateTime(timezone=True), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_cases_stage", "cases", ["stage"])
        op.create_index("ix_cases_assignee_id", "cases", ["assignee_id"])

    if "case_steps" not in existing:
        op.create_table(
            "case_steps",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column("stage", sa.String(40), nullable=False),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("assignee_id", sa.String(64), nullable=True),
            sa.Column("sla_hours", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("notes", sa.Text(), nullable=True),
        )
        op.create_index("ix_case_steps_case_id", "case_steps", ["case_id"])
        op.create_index("idx_case_steps_case_stage", "case_steps", ["case_id", "stage"])
        op.create_index(
            "uq_case_steps_one_active", "case_steps", ["case_id"],
            unique=True,
            sqlite_where=sa.text("completed_at IS NULL"),
            postgresql_where=sa.text("completed_at IS NULL"),
        )

    if "tasks" not in existing:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column("kind", sa.String(20), nullable=False, server_default="AD_HOC"),
            sa.Column("title", sa.String(300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("assignee_id", sa.String(64), nullable=True),
            sa.Column("assigned_by", sa.String(64), nullable=True),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="3"),
            sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
            sa.Column("auto_generated", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("sla_hours", sa.Integer(), nullable=True),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_tasks_case_id", "tasks", ["case_id"])
        op.create_index("idx_tasks_case_status", "tasks", ["case_id", "status"])
        op.create_index("idx_tasks_assignee_status", "tasks", ["assignee_id", "status"])

    if "audit_logs" not in existing:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.String(36), nullable=False),
            sa.Column("action", sa.String(60), nullable=False),
            sa.Column("from_stage", sa.String(40), nullable=True),
            sa.Column("to_stage", sa.String(40), nullable=False),
            sa.Column("actor_id", sa.String(64), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("idx_audit_case", "audit_logs", ["case_id"])
        op.create_index("idx_audit_actor", "audit_logs", ["actor_id"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])

    if "notifications" not in existing:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=True),
            sa.Column("recipient_id", sa.String(64), nullable=True),
            sa.Column("target_role", sa.String(30), nullable=True),
            sa.Column("channel", sa.String(20), nullable=False, server_default="in_app"),
            sa.Column("subject", sa.String(300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("stage", sa.String(40), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint(
                "recipient_id IS NOT NULL OR target_role IS NOT NULL",
                name="ck_notifications_addressed",
            ),
        )
        op.create_index("ix_notifications_case_id", "notifications", ["case_id"])
        op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])
        op.create_index("ix_notifications_target_role", "notifications", ["target_role"])

    # ── Read-only collaborator tables ────────────────────────────────────
    if "user_roles" not in existing:
        op.create_table(
            "user_roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(64), nullable=False),
            sa.Column("role", sa.String(30), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("assigned_by", sa.String(64), nullable=True),
            sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("idx_user_roles_user_active", "user_roles", ["user_id", "is_active"])

    if "documents" not in existing:
        op.create_table(
            "documents",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column("document_name", sa.String(255), nullable=False),
            sa.Column("document_type", sa.String(60), nullable=False),
            sa.Column("file_path", sa.String(500), nullable=True),
            sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("verification_status", sa.String(20), nullable=False, server_default="PENDING"),
            sa.Column("verified_by", sa.String(64), nullable=True),
            sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_documents_case_id", "documents", ["case_id"])

    if "control_visits" not in existing:
        op.create_table(
            "control_visits",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column("assigned_inspector", sa.String(64), nullable=True),
            sa.Column("visit_status", sa.String(20), nullable=False, server_default="SCHEDULED"),
            sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("actual_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_control_visits_case_id", "control_visits", ["case_id"])

    if "control_photos" not in existing:
        op.create_table(
            "control_photos",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column("control_visit_id", sa.String(36),
                      sa.ForeignKey("control_visits.id", ondelete="SET NULL"), nullable=True),
            sa.Column("photo_category", sa.String(40), nullable=False),
            sa.Column("file_path", sa.String(500), nullable=False, server_default=""),
            sa.Column("taken_by", sa.String(64), nullable=True),
            sa.Column("taken_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_control_photos_case_id", "control_photos", ["case_id"])

    for table, author_col, conclusion_col, extra in (
        ("technical_reports", "inspector_id", "technical_conclusion",
         sa.Column("estimated_cost", sa.Numeric(12, 2), nullable=True)),
        ("social_reports", "social_worker_id", "social_conclusion",
         sa.Column("vulnerability_score", sa.Integer(), nullable=True)),
    ):
        if table in existing:
            continue
        op.create_table(
            table,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("case_id", sa.String(36), _case_fk(), nullable=False),
            sa.Column(author_col, sa.String(64), nullable=True),
            sa.Column(conclusion_col, sa.Text(), nullable=True),
            sa.Column("recommendations", sa.Text(), nullable=True),
            extra,
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index(f"ix_{table}_case_id", table, ["case_id"])


def downgrade():
    for table in (
        "social_reports", "technical_reports", "control_photos", "control_visits",
        "documents", "user_roles", "notifications", "audit_logs", "tasks",
        "case_steps", "cases",
    ):
        op.drop_table(table)
