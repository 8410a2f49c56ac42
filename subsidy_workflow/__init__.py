"""
Housing Subsidy Workflow Engine
Flask Application Factory.

Usage:
    from subsidy_workflow import create_app
    app = create_app()           # defaults to APP_ENV, else "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from subsidy_workflow.config import config
from subsidy_workflow.middleware.jwt_auth import init_jwt_middleware
from subsidy_workflow.middleware.logging_config import configure_logging
from subsidy_workflow.middleware.rate_limiter import init_rate_limits
from subsidy_workflow.middleware.security_headers import init_security_headers
from subsidy_workflow.middleware.timing import init_request_timing
from subsidy_workflow.models import db
from subsidy_workflow.services.state_table import StateTableError, validate_state_table

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to APP_ENV, or "development" if unset.

    Returns:
        Configured Flask application instance.

    Raises:
        StateTableError if the workflow state table is inconsistent.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Logging (must be first) ──────────────────────────────────────────
    configure_logging(app)

    # ── Refuse to start on a broken lifecycle graph ──────────────────────
    validate_state_table()

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins == "*":
        CORS(app)
    elif cors_origins:
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    # empty: no cross-origin access

    # ── Middleware ───────────────────────────────────────────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_jwt_middleware(app)

    @app.before_request
    def _guard_content_type():
        from flask import abort
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic and create_all see them ─────────────
    from subsidy_workflow.models import audit as _audit_models          # noqa: F401
    from subsidy_workflow.models import auth as _auth_models            # noqa: F401
    from subsidy_workflow.models import case as _case_models            # noqa: F401
    from subsidy_workflow.models import evidence as _evidence_models    # noqa: F401
    from subsidy_workflow.models import notification as _notification_models  # noqa: F401
    from subsidy_workflow.models import task as _task_models            # noqa: F401

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        os.makedirs(app.instance_path, exist_ok=True)

    with app.app_context():
        try:
            db.create_all()
        except Exception:
            logger.exception("db.create_all() failed")
            raise

    # ── Blueprints ───────────────────────────────────────────────────────
    from subsidy_workflow.blueprints.health_bp import health_bp
    from subsidy_workflow.blueprints.task_bp import tasks_bp
    from subsidy_workflow.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("validate-state-table")
    def validate_state_table_cmd():
        """Check the workflow state table for missing or dangling stages."""
        try:
            validate_state_table()
        except StateTableError as exc:
            raise click.ClickException(str(exc))
        click.echo("State table OK")

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
