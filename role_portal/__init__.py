"""
Security Role Request Portal
Flask Application Factory.

Usage:
    from role_portal import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from role_portal.config import config
from role_portal.middleware.logging_config import configure_logging
from role_portal.middleware.rate_limiter import init_rate_limits
from role_portal.middleware.security_headers import init_security_headers
from role_portal.middleware.timing import init_request_timing
from role_portal.models import db

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
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
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    if not app.config.get("TESTING"):
        os.makedirs(app.instance_path, exist_ok=True)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
             supports_credentials=True)
    else:
        CORS(app)

    init_security_headers(app)
    init_request_timing(app)

    # ── Content-Type guard for mutating API calls ────────────────────────
    @app.before_request
    def _guard_request():
        from flask import abort
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from role_portal.models import approval as _approval_models          # noqa: F401
    from role_portal.models import request as _request_models            # noqa: F401
    from role_portal.models import role_selection as _selection_models   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()
        app.logger.debug("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from role_portal.blueprints.approvals_bp import approvals_bp
    from role_portal.blueprints.health_bp import health_bp
    from role_portal.blueprints.requests_bp import requests_bp
    from role_portal.blueprints.roles_bp import roles_bp
    from role_portal.blueprints.session_bp import session_bp

    app.register_blueprint(session_bp)
    app.register_blueprint(requests_bp)
    app.register_blueprint(roles_bp)
    app.register_blueprint(approvals_bp)
    app.register_blueprint(health_bp)

    init_rate_limits(app, limiter)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(400)
    def bad_request(e):
        return {"error": getattr(e, "description", None) or "Bad request",
                "code": "ERR_VALIDATION_INVALID"}, 400

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": getattr(e, "description", None) or "Unsupported media type"}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "detail": str(getattr(e, "description", ""))}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
