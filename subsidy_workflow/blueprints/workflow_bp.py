"""
Workflow blueprint: stage transitions and case workflow queries.

Endpoints:
    POST /api/v1/workflow/transition              : move a case to another stage
    POST /api/v1/workflow/validate-transition     : dry run, returns {valid, reasons}
    GET  /api/v1/workflow/available-transitions   : ?case_id=
    GET  /api/v1/workflow/status                  : ?case_id=
    GET  /api/v1/workflow/cases/<case_id>/audit   : audit trail
"""

from flask import Blueprint, jsonify, request

from subsidy_workflow.blueprints import json_body, register_error_handlers, require_actor
from subsidy_workflow.services import workflow_service as ws
from subsidy_workflow.utils.errors import E, api_error

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1/workflow")
register_error_handlers(workflow_bp)


def _required(data: dict, *fields):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        return api_error(
            E.VALIDATION_REQUIRED,
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            details={f: "required" for f in missing},
        )
    return None


@workflow_bp.route("/transition", methods=["POST"])
def transition():
    actor, err = require_actor()
    if err:
        return err
    data = json_body()
    err = _required(data, "case_id", "target_stage")
    if err:
        return err

    case = ws.transition(
        data["case_id"],
        data["target_stage"],
        actor,
        notes=data.get("notes"),
        assignee_id=data.get("assignee_id"),
        expected_version=data.get("version"),
    )
    return jsonify({"case": case.to_dict()}), 200


@workflow_bp.route("/validate-transition", methods=["POST"])
def validate_transition():
    actor, err = require_actor()
    if err:
        return err
    data = json_body()
    err = _required(data, "case_id", "target_stage")
    if err:
        return err

    result = ws.validate_transition(
        data["case_id"], data["target_stage"], actor, notes=data.get("notes"),
    )
    return jsonify(result), 200


@workflow_bp.route("/available-transitions", methods=["GET"])
def available_transitions():
    actor, err = require_actor()
    if err:
        return err
    err = _required(request.args, "case_id")
    if err:
        return err
    return jsonify(ws.available_transitions(request.args["case_id"], actor)), 200


@workflow_bp.route("/status", methods=["GET"])
def workflow_status():
    _, err = require_actor()
    if err:
        return err
    err = _required(request.args, "case_id")
    if err:
        return err
    return jsonify(ws.workflow_status(request.args["case_id"])), 200


@workflow_bp.route("/cases/<case_id>/audit", methods=["GET"])
def case_audit(case_id):
    _, err = require_actor()
    if err:
        return err
    logs = ws.list_case_audit(case_id)
    return jsonify({"audit_logs": [entry.to_dict() for entry in logs]}), 200
