"""
Engine-wide exception hierarchy.

Services raise these types; blueprints register one handler per type and map
it to an HTTP status and machine-readable code (see utils/errors.py).

Usage:
    from subsidy_workflow.core.exceptions import NotFoundError, PreconditionFailedError

    raise NotFoundError(resource="Case", resource_id=case_id)
    raise PreconditionFailedError(["Minimum 8 photos required ..."])
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Case", "Task").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or names something that does not exist
    (unknown stage, bad priority, closed task).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write loses against a concurrent change.

    For cases this is the optimistic version check: the row's version no
    longer matches the one the caller read.

    Args:
        resource: Model name.
        resource_id: Key of the contended row.
        expected_version: Version the caller based its change on.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        expected_version: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.expected_version = expected_version
        msg = f"{resource} {resource_id} was modified concurrently"
        if expected_version is not None:
            msg += f" (expected version {expected_version})"
        msg += "; reload and retry"
        super().__init__(msg)


# ── Workflow family ──────────────────────────────────────────────────────────


class WorkflowError(Exception):
    """Base class for rejected stage transitions."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidTransitionError(WorkflowError):
    """Target stage is not a permitted successor of the current one."""

    def __init__(self, current: str, target: str, reason: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(reason or f"Transition from {current} to {target} is not allowed")


class UnauthorizedTransitionError(WorkflowError):
    """Caller's role may not move a case into the target stage."""

    def __init__(self, actor_id: str, role: str | None, target: str) -> None:
        self.actor_id = actor_id
        self.role = role
        self.target = target
        if role is None:
            reason = "Unable to determine user role"
        else:
            reason = f"User role {role} is not authorized for this transition"
        super().__init__(reason)


class PreconditionFailedError(WorkflowError):
    """Evidence required to enter the target stage is missing.

    ``reasons`` lists every failing rule in evaluation order.
    """

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("; ".join(self.reasons) or "Preconditions not satisfied")
