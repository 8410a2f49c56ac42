"""
JWT Auth Middleware: parses the Bearer token and sets ``g.jwt_user_id``.

Identity resolution order (see ``current_actor``):
  1. JWT (Authorization: Bearer <token>)                      → g.jwt_user_id
  2. X-User header, only when API_AUTH_ENABLED is "false"     (dev / tests)

The middleware never rejects a request itself; endpoints that need a caller
call ``current_actor()`` and answer 401 when it returns None.
"""

import logging

import jwt as pyjwt
from flask import current_app, g, request

from subsidy_workflow.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
            g.jwt_user_id = payload.get("sub")
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
        except pyjwt.InvalidTokenError as exc:
            g.jwt_error = "Invalid token"
            logger.debug("Rejected bearer token: %s", exc)


def auth_enabled() -> bool:
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() != "false"


def current_actor() -> str | None:
    """User id of the caller, or None if the request carries no identity."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id:
        return str(user_id)
    if not auth_enabled():
        header = (request.headers.get("X-User") or "").strip()
        return header or None
    return None
