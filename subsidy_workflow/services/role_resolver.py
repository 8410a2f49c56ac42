"""
Role resolution: which single role a caller acts under.

A caller is authorised through exactly one active ``UserRole`` row.  No
active row, or more than one, leaves the role unresolved and every
transition guarded by a role check is refused.
"""

import logging

from subsidy_workflow.models.auth import UserRole
from subsidy_workflow.services.state_table import Role

logger = logging.getLogger(__name__)


def resolve_active_role(user_id: str | None) -> Role | None:
    """Return the caller's single active Role, or None when unresolvable."""
    if not user_id:
        return None

    rows = (
        UserRole.query
        .filter_by(user_id=str(user_id), is_active=True)
        .limit(2)
        .all()
    )
    if len(rows) != 1:
        if rows:
            logger.warning("User %s has several active roles; refusing to pick one", user_id)
        return None

    role = Role.parse(rows[0].role)
    if role is None:
        logger.warning("User %s has unknown role %r", user_id, rows[0].role)
    return role
