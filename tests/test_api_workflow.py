"""
Workflow API tests: status codes, error codes and response shapes.
"""

import pytest

from subsidy_workflow.services.state_table import Role, Stage

URL = "/api/v1/workflow"


def _hdr(user):
    return {"X-User": user}


@pytest.fixture()
def users(grant_role):
    grant_role("u-staff", Role.STAFF)
    grant_role("u-control", Role.CONTROL)
    grant_role("u-director", Role.DIRECTOR)


class TestTransitionEndpoint:
    def test_success(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"), json={
            "case_id": case.id, "target_stage": "INTAKE_REVIEW", "notes": "File complete",
            "version": 1,
        })
        assert res.status_code == 200
        body = res.get_json()["case"]
        assert body["stage"] == "INTAKE_REVIEW"
        assert body["version"] == 2
        assert body["sla_deadline"] is not None

    def test_unauthenticated(self, client, make_case):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/transition", json={"case_id": case.id,
                                                      "target_stage": "INTAKE_REVIEW"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_missing_fields(self, client, users):
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"), json={})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert body["details"] == {"case_id": "required", "target_stage": "required"}

    def test_unknown_stage(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "ARCHIVED"})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_TRANSITION"
        assert body["details"] == {"current_stage": "DRAFT", "target_stage": "ARCHIVED"}

    def test_bad_version_value(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"), json={
            "case_id": case.id, "target_stage": "INTAKE_REVIEW", "version": "latest",
        })
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_unknown_case(self, client, users):
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                          json={"case_id": "missing", "target_stage": "INTAKE_REVIEW"})
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_invalid_transition(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "CONTROL_ASSIGN"})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_TRANSITION"
        assert body["details"] == {"current_stage": "DRAFT", "target_stage": "CONTROL_ASSIGN"}

    def test_forbidden_role(self, client, make_case, users):
        case = make_case(Stage.INTAKE_REVIEW)
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "CONTROL_ASSIGN"})
        assert res.status_code == 403
        assert res.get_json() == {
            "error": "User role staff is not authorized for this transition",
            "code": "ERR_FORBIDDEN",
        }

    def test_precondition_failed(self, client, make_case, users):
        case = make_case(Stage.TECHNICAL_REVIEW)
        res = client.post(f"{URL}/transition", headers=_hdr("u-director"),
                          json={"case_id": case.id, "target_stage": "DIRECTOR_REVIEW"})
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_PRECONDITION_FAILED"
        assert len(body["details"]["reasons"]) == 5
        assert body["error"] == "; ".join(body["details"]["reasons"])

    def test_version_conflict(self, client, make_case, users):
        case = make_case(Stage.INTAKE_REVIEW, version=4)
        res = client.post(f"{URL}/transition", headers=_hdr("u-control"), json={
            "case_id": case.id, "target_stage": "CONTROL_ASSIGN", "version": 3,
        })
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_VERSION"

        res = client.post(f"{URL}/transition", headers=_hdr("u-control"), json={
            "case_id": case.id, "target_stage": "CONTROL_ASSIGN", "version": 4,
        })
        assert res.status_code == 200
        assert res.get_json()["case"]["version"] == 5

    def test_non_json_body_rejected(self, client, users):
        res = client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                          data="case_id=1", content_type="text/plain")
        assert res.status_code == 415


class TestValidateEndpoint:
    def test_valid(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/validate-transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "INTAKE_REVIEW"})
        assert res.status_code == 200
        assert res.get_json() == {"valid": True, "reasons": []}

    def test_invalid_is_still_200(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        res = client.post(f"{URL}/validate-transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "CLOSURE"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["valid"] is False
        assert body["reasons"] == ["Transition from DRAFT to CLOSURE is not allowed"]

    def test_unknown_stage_is_still_200(self, client, make_case, users):
        case = make_case(Stage.TECHNICAL_REVIEW)
        res = client.post(f"{URL}/validate-transition", headers=_hdr("u-staff"),
                          json={"case_id": case.id, "target_stage": "BOGUS"})
        assert res.status_code == 200
        assert res.get_json() == {
            "valid": False,
            "reasons": ["Transition from TECHNICAL_REVIEW to BOGUS is not allowed"],
        }

    def test_unknown_case_is_404(self, client, users):
        res = client.post(f"{URL}/validate-transition", headers=_hdr("u-staff"),
                          json={"case_id": "missing", "target_stage": "INTAKE_REVIEW"})
        assert res.status_code == 404


class TestQueries:
    def test_available_transitions(self, client, make_case, users):
        case = make_case(Stage.TECHNICAL_REVIEW)
        res = client.get(f"{URL}/available-transitions?case_id={case.id}",
                         headers=_hdr("u-director"))
        assert res.status_code == 200
        body = res.get_json()
        assert body["case_id"] == case.id
        assert [t["stage"] for t in body["transitions"]] == ["DIRECTOR_REVIEW", "ON_HOLD"]

    def test_available_transitions_requires_case_id(self, client, users):
        res = client.get(f"{URL}/available-transitions", headers=_hdr("u-staff"))
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_status(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                    json={"case_id": case.id, "target_stage": "INTAKE_REVIEW"})
        res = client.get(f"{URL}/status?case_id={case.id}", headers=_hdr("u-staff"))
        assert res.status_code == 200
        body = res.get_json()
        assert body["current_stage"] == "INTAKE_REVIEW"
        assert body["completed_steps"] == 1
        assert body["progress"] == 9
        assert [s["is_active"] for s in body["steps"]] == [False, True]

    def test_status_unknown_case(self, client, users):
        res = client.get(f"{URL}/status?case_id=missing", headers=_hdr("u-staff"))
        assert res.status_code == 404

    def test_audit_trail(self, client, make_case, users):
        case = make_case(Stage.DRAFT)
        client.post(f"{URL}/transition", headers=_hdr("u-staff"),
                    json={"case_id": case.id, "target_stage": "INTAKE_REVIEW", "notes": "ok"})
        res = client.get(f"{URL}/cases/{case.id}/audit", headers=_hdr("u-staff"))
        assert res.status_code == 200
        logs = res.get_json()["audit_logs"]
        assert len(logs) == 1
        assert logs[0]["actor_id"] == "u-staff"
        assert logs[0]["from_stage"] == "DRAFT"
        assert logs[0]["to_stage"] == "INTAKE_REVIEW"

    def test_unexpected_error_is_json_500(self, client, make_case, users, monkeypatch):
        from subsidy_workflow.services import workflow_service

        def _boom(case_id):
            raise RuntimeError("db gone")

        monkeypatch.setattr(workflow_service, "workflow_status", _boom)
        case = make_case(Stage.DRAFT)
        res = client.get(f"{URL}/status?case_id={case.id}", headers=_hdr("u-staff"))
        assert res.status_code == 500
        assert res.get_json()["code"] == "ERR_INTERNAL"
