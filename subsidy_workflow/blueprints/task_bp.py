"""
Task blueprint.

Endpoints:
    POST /api/v1/tasks           : create an ad hoc task
    GET  /api/v1/tasks           : ?case_id=&assignee_id=&status=
    PUT  /api/v1/tasks/complete  : {task_id, notes?}
"""

from flask import Blueprint, jsonify, request

from subsidy_workflow.blueprints import json_body, register_error_handlers, require_actor
from subsidy_workflow.services import task_service
from subsidy_workflow.utils.errors import E, api_error

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")
register_error_handlers(tasks_bp)


@tasks_bp.route("", methods=["POST"])
def create_task():
    actor, err = require_actor()
    if err:
        return err
    task = task_service.create_task(json_body(), actor)
    return jsonify({"task": task.to_dict()}), 201


@tasks_bp.route("", methods=["GET"])
def list_tasks():
    _, err = require_actor()
    if err:
        return err
    tasks = task_service.list_tasks(
        case_id=request.args.get("case_id"),
        assignee_id=request.args.get("assignee_id"),
        status=request.args.get("status"),
    )
    return jsonify({"tasks": [t.to_dict() for t in tasks], "total": len(tasks)}), 200


@tasks_bp.route("/complete", methods=["PUT"])
def complete_task():
    _, err = require_actor()
    if err:
        return err
    data = json_body()
    if data.get("task_id") in (None, ""):
        return api_error(E.VALIDATION_REQUIRED, "task_id is required",
                         details={"task_id": "required"})
    task = task_service.complete_task(data["task_id"], notes=data.get("notes"))
    return jsonify({"task": task.to_dict()}), 200
