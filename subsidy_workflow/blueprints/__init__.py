"""
Housing Subsidy Workflow Engine
Blueprint registry and shared request helpers.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from subsidy_workflow.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionFailedError,
    UnauthorizedTransitionError,
    ValidationError,
)
from subsidy_workflow.middleware.jwt_auth import current_actor
from subsidy_workflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def require_actor():
    """Resolve the caller.

    Returns:
        (actor_id, None) on success, (None, error_response) when the request
        carries no identity.
    """
    actor = current_actor()
    if not actor:
        return None, api_error(E.UNAUTHENTICATED, "Authentication required", status=401)
    return actor, None


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map the engine's exception types to JSON errors for *bp*."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_REQUIRED if "required" in error.details.values() else E.VALIDATION_INVALID
        return api_error(code, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_VERSION, str(error))

    @bp.errorhandler(InvalidTransitionError)
    def _handle_invalid_transition(error: InvalidTransitionError):
        return api_error(E.INVALID_TRANSITION, error.reason,
                         details={"current_stage": error.current, "target_stage": error.target})

    @bp.errorhandler(UnauthorizedTransitionError)
    def _handle_unauthorized(error: UnauthorizedTransitionError):
        return api_error(E.FORBIDDEN, error.reason)

    @bp.errorhandler(PreconditionFailedError)
    def _handle_precondition(error: PreconditionFailedError):
        return api_error(E.PRECONDITION_FAILED, error.reason, details={"reasons": error.reasons})

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return {"error": error.description}, error.code
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
