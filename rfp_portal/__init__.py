"""
rfp_portal/__init__.py

Flask application factory for the RFP Vendor Portal.

Serves the JSON API behind the vendor proposal wizard and the admin review
dashboard:
- /auth          session login / logout
- /api/drafts    the logged-in vendor's single draft
- /api/submissions      vendor-scoped submissions
- /api/admin/...        admin review list and actions

IMPORTANT:
- UI is never trusted; every permission and status check runs server-side.
- Every PortalError is rendered as JSON by one error handler; routes never
  build error payloads by hand.
- The API is consumed by scripts and the wizard client (JSON bodies, no forms),
  so its blueprints are exempt from CSRF.
"""

from __future__ import annotations

import logging

import click
from flask import Flask, jsonify

from .errors import PortalError
from .extensions import csrf, db, login_manager, migrate
from .models import User


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    _configure_logging(app)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> User | None:
        """Load user for Flask-Login."""
        try:
            user = db.session.get(User, int(user_id))
        except ValueError:
            return None
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "Forbidden", "message": "Login required"}), 401

    # ----------------------------------------------------------------------
    # Errors
    # ----------------------------------------------------------------------
    @app.errorhandler(PortalError)
    def handle_portal_error(exc: PortalError):
        if exc.http_status >= 500:
            app.logger.error("%s: %s", exc.code, exc)
        return jsonify(exc.to_dict()), exc.http_status

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.admin import admin_bp
    from .blueprints.auth import auth_bp
    from .blueprints.drafts import drafts_bp
    from .blueprints.submissions import submissions_bp

    for bp in (auth_bp, drafts_bp, submissions_bp, admin_bp):
        csrf.exempt(bp)
        app.register_blueprint(bp)

    # ----------------------------------------------------------------------
    # CLI
    # ----------------------------------------------------------------------
    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables (development; use `flask db upgrade` with migrations)."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-admin")
    @click.argument("email")
    @click.argument("password")
    def seed_admin_command(email: str, password: str):
        """Create the first admin account (or reset its password)."""
        from .seed import seed_admin

        try:
            user, created = seed_admin(email, password)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"Admin {user.email} {'created' if created else 'updated'}.")

    @app.cli.command("purge-drafts")
    @click.option("--days", type=int, default=None, help="Age threshold in days (default: DRAFT_RETENTION_DAYS).")
    def purge_drafts_command(days: int | None):
        """Delete drafts that have not been saved for N days."""
        from .drafts import SqlDraftStore

        days = days if days is not None else app.config["DRAFT_RETENTION_DAYS"]
        removed = SqlDraftStore().purge_stale(older_than_days=days)
        click.echo(f"Removed {removed} draft(s) older than {days} days.")

    return app


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger(__name__).setLevel(level)
    app.logger.setLevel(level)
