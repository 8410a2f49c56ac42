"""
Precondition evaluator tests: DIRECTOR_REVIEW evidence gates and the
MINISTER_DECISION director-recommendation gate.
"""

from datetime import datetime, timedelta, timezone

import pytest

from subsidy_workflow.models import db
from subsidy_workflow.models.case import CaseStep
from subsidy_workflow.models.evidence import (
    DOCUMENT_STATUSES,
    PHOTO_CATEGORIES,
    VISIT_STATUSES,
    Document,
    SocialReport,
    TechnicalReport,
)
from subsidy_workflow.services.preconditions import (
    REQUIRED_PHOTO_CATEGORIES,
    check_preconditions,
    has_preconditions,
)
from subsidy_workflow.services.state_table import Stage


@pytest.fixture()
def tech_case(make_case):
    return make_case(Stage.TECHNICAL_REVIEW)


class TestDirectorReviewGates:
    def test_full_evidence_passes(self, tech_case, add_director_evidence):
        add_director_evidence(tech_case)
        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.satisfied
        assert result.reasons == []

    def test_no_evidence_lists_every_reason_in_order(self, tech_case):
        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert not result.satisfied
        assert result.reasons == [
            "Minimum 8 photos required from control visit (currently 0)",
            "Missing required photo categories: EXTERIOR_FRONT, INTERIOR_MAIN, "
            "STRUCTURAL_ISSUES, UTILITIES",
            "Technical assessment report is required before director review",
            "Social assessment report is required before director review",
            "Control visit must be completed before director review",
        ]

    def test_unverified_required_documents_named(self, tech_case, add_director_evidence):
        add_director_evidence(tech_case)
        db.session.add_all([
            Document(case_id=tech_case.id, document_name="Income Statement",
                     document_type="INCOME", is_required=True, verification_status="PENDING"),
            Document(case_id=tech_case.id, document_name="Tax Record",
                     document_type="INCOME", is_required=True, verification_status="REJECTED"),
        ])
        db.session.commit()

        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == ["Required documents not verified: Income Statement, Tax Record"]

    @pytest.mark.parametrize("status", sorted(DOCUMENT_STATUSES - {"VERIFIED"}))
    def test_every_non_verified_status_blocks(self, tech_case, add_director_evidence, status):
        add_director_evidence(tech_case)
        db.session.add(Document(case_id=tech_case.id, document_name="Income Statement",
                                document_type="INCOME", is_required=True,
                                verification_status=status))
        db.session.commit()

        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == ["Required documents not verified: Income Statement"]

    def test_optional_unverified_document_ignored(self, tech_case, add_director_evidence):
        # the evidence set includes a PENDING optional Utility Bill
        add_director_evidence(tech_case)
        assert check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW).satisfied

    def test_photo_shortfall_counts_current_photos(self, tech_case, add_director_evidence):
        add_director_evidence(tech_case, photos=REQUIRED_PHOTO_CATEGORIES[:3])
        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == [
            "Minimum 8 photos required from control visit (currently 3)",
            "Missing required photo categories: UTILITIES",
        ]

    def test_enough_photos_but_missing_category(self, tech_case, add_director_evidence):
        add_director_evidence(tech_case, photos=("EXTERIOR_FRONT",) * 4 + ("INTERIOR_MAIN",) * 4)
        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == [
            "Missing required photo categories: STRUCTURAL_ISSUES, UTILITIES",
        ]

    @pytest.mark.parametrize("model,field,reason", [
        (TechnicalReport, "technical_conclusion",
         "Technical report must include conclusion and recommendations"),
        (TechnicalReport, "recommendations",
         "Technical report must include conclusion and recommendations"),
        (SocialReport, "social_conclusion",
         "Social report must include conclusion and recommendations"),
        (SocialReport, "recommendations",
         "Social report must include conclusion and recommendations"),
    ])
    def test_incomplete_report(self, tech_case, add_director_evidence, model, field, reason):
        add_director_evidence(tech_case)
        report = model.query.filter_by(case_id=tech_case.id).one()
        setattr(report, field, "   ")
        db.session.commit()

        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == [reason]

    def test_required_categories_are_known(self):
        assert set(REQUIRED_PHOTO_CATEGORIES) <= PHOTO_CATEGORIES

    @pytest.mark.parametrize("visit_status", sorted(VISIT_STATUSES - {"COMPLETED"}) + [None])
    def test_visit_must_be_completed(self, tech_case, add_director_evidence, visit_status):
        add_director_evidence(tech_case, visit_status=visit_status)
        result = check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW)
        assert result.reasons == ["Control visit must be completed before director review"]

    def test_evidence_of_other_cases_does_not_count(self, make_case, tech_case, add_director_evidence):
        other = make_case(Stage.TECHNICAL_REVIEW)
        add_director_evidence(other)
        assert not check_preconditions(tech_case.id, Stage.DIRECTOR_REVIEW).satisfied


class TestMinisterDecisionGate:
    def _closed_director_step(self, case, notes):
        now = datetime.now(timezone.utc)
        db.session.add(CaseStep(case_id=case.id, stage="DIRECTOR_REVIEW",
                                started_at=now - timedelta(days=3),
                                completed_at=now - timedelta(days=2),
                                sla_hours=168, notes=notes))
        db.session.commit()

    def test_closing_notes_count_as_recommendation(self, make_case):
        case = make_case(Stage.DIRECTOR_REVIEW)
        result = check_preconditions(case.id, Stage.MINISTER_DECISION,
                                     closing_notes="Recommend approval of 12,000")
        assert result.satisfied

    @pytest.mark.parametrize("notes", [None, "", "  "])
    def test_blank_notes_rejected(self, make_case, notes):
        case = make_case(Stage.DIRECTOR_REVIEW)
        result = check_preconditions(case.id, Stage.MINISTER_DECISION, closing_notes=notes)
        assert result.reasons == ["Director recommendation is required before minister decision"]

    def test_previous_director_step_with_notes(self, make_case):
        case = make_case(Stage.ON_HOLD)
        self._closed_director_step(case, "Recommend approval")
        assert check_preconditions(case.id, Stage.MINISTER_DECISION).satisfied

    def test_previous_director_step_without_notes(self, make_case):
        case = make_case(Stage.ON_HOLD)
        self._closed_director_step(case, None)
        assert not check_preconditions(case.id, Stage.MINISTER_DECISION).satisfied

    def test_closing_notes_ignored_outside_director_review(self, make_case):
        case = make_case(Stage.ON_HOLD)
        result = check_preconditions(case.id, Stage.MINISTER_DECISION, closing_notes="Looks fine")
        assert not result.satisfied


class TestUngatedStages:
    @pytest.mark.parametrize("stage", [s for s in Stage
                                       if s not in (Stage.DIRECTOR_REVIEW, Stage.MINISTER_DECISION)])
    def test_always_satisfied(self, tech_case, stage):
        assert not has_preconditions(stage)
        assert check_preconditions(tech_case.id, stage).satisfied
