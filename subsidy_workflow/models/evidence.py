"""
Housing Subsidy Workflow Engine
Evidence models: owned by the intake, control-visit and reporting modules.

The workflow engine only *reads* these tables (precondition gates); uploads,
verification and report authoring happen elsewhere.

Models:
    - Document:         applicant document with verification status
    - ControlPhoto:     photo taken during the control visit, by category
    - ControlVisit:     on-site inspection record
    - TechnicalReport:  inspector's technical assessment
    - SocialReport:     social worker's assessment
"""

import uuid
from datetime import datetime, timezone

from subsidy_workflow.models import db


# ── Constants ────────────────────────────────────────────────────────────────

DOCUMENT_STATUSES = {"PENDING", "VERIFIED", "REJECTED", "MISSING"}

PHOTO_CATEGORIES = {
    "EXTERIOR_FRONT", "EXTERIOR_BACK", "EXTERIOR_SIDES",
    "INTERIOR_MAIN", "INTERIOR_ROOMS",
    "STRUCTURAL_ISSUES", "UTILITIES", "OTHER",
}

VISIT_STATUSES = {"SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED"}


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


class Document(db.Model):
    __tablename__ = "documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    document_name = db.Column(db.String(255), nullable=False)
    document_type = db.Column(db.String(60), nullable=False)
    file_path = db.Column(db.String(500), nullable=True)
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    verification_status = db.Column(db.String(20), nullable=False, default="PENDING")
    verified_by = db.Column(db.String(64), nullable=True)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<Document {self.document_name} [{self.verification_status}]>"


class ControlPhoto(db.Model):
    __tablename__ = "control_photos"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    control_visit_id = db.Column(
        db.String(36), db.ForeignKey("control_visits.id", ondelete="SET NULL"),
        nullable=True,
    )
    photo_category = db.Column(db.String(40), nullable=False)
    file_path = db.Column(db.String(500), nullable=False, default="")
    taken_by = db.Column(db.String(64), nullable=True)
    taken_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<ControlPhoto {self.id}: {self.photo_category}>"


class ControlVisit(db.Model):
    __tablename__ = "control_visits"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    assigned_inspector = db.Column(db.String(64), nullable=True)
    visit_status = db.Column(db.String(20), nullable=False, default="SCHEDULED")
    scheduled_date = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_date = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<ControlVisit {self.id}: {self.visit_status}>"


class TechnicalReport(db.Model):
    __tablename__ = "technical_reports"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    inspector_id = db.Column(db.String(64), nullable=True)
    technical_conclusion = db.Column(db.Text, nullable=True)
    recommendations = db.Column(db.Text, nullable=True)
    estimated_cost = db.Column(db.Numeric(12, 2), nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)


class SocialReport(db.Model):
    __tablename__ = "social_reports"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    case_id = db.Column(
        db.String(36), db.ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    social_worker_id = db.Column(db.String(64), nullable=True)
    social_conclusion = db.Column(db.Text, nullable=True)
    recommendations = db.Column(db.Text, nullable=True)
    vulnerability_score = db.Column(db.Integer, nullable=True)
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
