import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.security import generate_password_hash

from hostpanel.config import config_by_name
from hostpanel.extensions import db, migrate, login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from hostpanel import models  # noqa: F401

    # --- Register blueprints ---
    from hostpanel.blueprints.auth import auth_bp
    from hostpanel.blueprints.hosting import hosting_bp
    from hostpanel.blueprints.admin import admin_bp
    from hostpanel.blueprints.mofh import mofh_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(hosting_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(mofh_bp)

    # Provider callbacks carry no session or CSRF token
    csrf.exempt(mofh_bp)

    # --- Error handlers (JSON API, no HTML pages) ---
    def _error(message, code, status):
        return jsonify({"success": False, "error": message, "code": code}), status

    @app.errorhandler(400)
    def bad_request(e):
        return _error(getattr(e, "description", "Bad request"), "bad_request", 400)

    @app.errorhandler(401)
    def unauthorized(e):
        return _error("Authentication required", "unauthorized", 401)

    @app.errorhandler(403)
    def forbidden(e):
        return _error("Admin access required", "forbidden", 403)

    @app.errorhandler(404)
    def not_found(e):
        return _error("Not found", "not_found", 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return _error("Method not allowed", "method_not_allowed", 405)

    @app.errorhandler(429)
    def too_many_requests(e):
        return _error("Too many requests. Please slow down.", "too_many_requests", 429)

    @app.errorhandler(500)
    def server_error(e):
        return _error("Internal server error", "server_error", 500)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # API responses carry account passwords
        response.headers["Cache-Control"] = "no-store"
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@hostpanel.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    @click.option("--name", default="Admin", help="Display name")
    def seed_admin(email, password, name):
        """Create (or promote) an admin user.

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password s3cret
        """
        from hostpanel.models.user import User

        email = email.lower().strip()
        existing = User.query.filter_by(email=email).first()
        if existing:
            existing.is_admin = True
            db.session.commit()
            click.echo(f"Admin user already exists: {email} (admin flag ensured)")
            return

        admin = User(
            email=email,
            password_hash=generate_password_hash(password),
            name=name,
            is_admin=True,
        )
        db.session.add(admin)
        db.session.commit()

        click.echo("")
        click.echo("=" * 60)
        click.echo(f"  Admin:     {email} / {password}")
        click.echo("=" * 60)

    @app.cli.command("sync-hosting")
    @click.option("--dry-run", is_flag=True, help="List accounts that would be synced without calling the provider.")
    def sync_hosting(dry_run):
        """Reconcile every PENDING / SUSPENDING / REACTIVATING account.

        Meant to run from cron every few minutes. Provider failures on one
        account are logged and the sweep moves on.

        Usage:
            flask sync-hosting
            flask sync-hosting --dry-run
        """
        from hostpanel.services.hosting_service import sync_pending_accounts

        summary = sync_pending_accounts(dry_run=dry_run)
        prefix = "[dry run] " if dry_run else ""
        click.echo(
            f"{prefix}checked={summary['checked']} "
            f"changed={summary['changed']} errors={summary['errors']}"
        )

    @app.cli.command("reload-hosting-config")
    def reload_config():
        """Rebuild the hosting config from env vars + settings rows and print it."""
        from hostpanel.services.hosting_config import reload_hosting_config

        config = reload_hosting_config()
        for key, value in config.to_public_dict().items():
            click.echo(f"  {key}: {value}")
