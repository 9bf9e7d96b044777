import os
import logging

import click
from flask import Flask, jsonify, render_template, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from realty.config import config_by_name
from realty.extensions import db, migrate, login_manager, csrf, limiter


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
        from realty import models  # noqa: F401

    # --- Register blueprints ---
    from realty.blueprints.public import public_bp
    from realty.blueprints.auth import auth_bp
    from realty.blueprints.guest import guest_bp
    from realty.blueprints.admin import admin_bp
    from realty.blueprints.crm_api import crm_api_bp

    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(guest_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(crm_api_bp)

    # Exempt the CRM JSON API from CSRF — admin-only, session-authenticated XHR
    csrf.exempt(crm_api_bp)

    # --- Template globals: branding + footer social links ---
    @app.context_processor
    def inject_site_context():
        from realty.services.social_link_service import footer_links

        try:
            social_links = footer_links()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning(f"Footer links unavailable: {e}")
            social_links = []
        return {
            "site_name": app.config.get("SITE_NAME"),
            "social_links": social_links,
        }

    register_error_handlers(app)
    register_security_headers(app)
    register_cli(app)

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    return app


# Joined into the Content-Security-Policy header, one directive per entry.
CSP_DIRECTIVES = {
    "default-src": "'self'",
    "script-src": "'self' 'unsafe-inline'",
    "style-src": "'self' 'unsafe-inline' https://fonts.googleapis.com",
    "img-src": "'self' data: https:",
    "font-src": "'self' https://fonts.gstatic.com",
    "connect-src": "'self'",
    "base-uri": "'self'",
    "form-action": "'self'",
    "frame-ancestors": "'none'",
}


def register_error_handlers(app):
    """HTML error pages for the site, JSON bodies for the /admin/api routes."""

    def _render(code, message):
        if request.path.startswith("/admin/api/"):
            return jsonify({"error": message}), code
        return render_template(f"errors/{code}.html"), code

    @app.errorhandler(403)
    def forbidden(e):
        return _render(403, "Forbidden")

    @app.errorhandler(404)
    def not_found(e):
        return _render(404, "Not found")

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests. Please slow down."}), 429

    @app.errorhandler(500)
    def server_error(e):
        return _render(500, "Internal server error")


def register_security_headers(app):
    csp = "; ".join(f"{name} {value}" for name, value in CSP_DIRECTIVES.items()) + ";"

    @app.after_request
    def add_security_headers(response):
        headers = response.headers
        headers.setdefault("X-Content-Type-Options", "nosniff")
        headers.setdefault("X-Frame-Options", "DENY")
        headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
        headers.setdefault("Content-Security-Policy", csp)
        if not app.debug:
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-admin")
    @click.option("--email", required=True, help="Admin email (must be in ADMIN_EMAILS)")
    @click.option("--password", required=True, help="Admin password")
    @click.option("--full-name", default="Admin", help="Display name")
    def seed_admin(email, password, full_name):
        """Create (or promote) an admin user.

        Usage:
            flask seed-admin --email agent@example.com --password s3cret
        """
        from realty.models.user import User, is_approved_admin_email

        email = email.strip().lower()
        if not is_approved_admin_email(email):
            click.echo(f"WARNING: {email} is not in ADMIN_EMAILS — the admin role will be ignored.")

        user = User.query.filter_by(email=email).first()
        if user:
            user.role = "admin"
            click.echo(f"Promoted existing user to admin: {email}")
        else:
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                full_name=full_name,
                role="admin",
            )
            db.session.add(user)
            click.echo(f"Created admin user: {email}")
        db.session.commit()

    @app.cli.command("seed-social-links")
    def seed_social_links():
        """Create the fixed set of (disabled) footer social links."""
        from realty.services.social_link_service import ensure_defaults

        created = ensure_defaults()
        db.session.commit()
        if created:
            click.echo(f"Created social links: {', '.join(created)}")
        else:
            click.echo("All social links already exist.")

    @app.cli.command("send-summary-report")
    @click.option("--with-analysis", is_flag=True, help="Include the AI lead analysis.")
    @click.option("--dry-run", is_flag=True, help="Print the numbers without sending.")
    def send_summary_report(with_analysis, dry_run):
        """Email the CRM summary (KPIs + pivot) to ADMIN_NOTIFY_EMAILS.

        Usage:
            flask send-summary-report
            flask send-summary-report --with-analysis
        """
        from realty.services import analysis_service, crm_views, lead_service
        from realty.services.notification_service import notify_summary_report

        records = lead_service.list_applications()
        kpis = crm_views.kpi_counts(records)
        pivot = crm_views.pivot_counts(records)

        analysis = None
        if with_analysis:
            try:
                analysis = analysis_service.analyze_leads(records)
            except analysis_service.LeadAnalysisError as e:
                click.echo(f"AI analysis skipped: {e}")

        click.echo(f"Total leads: {kpis['total_leads']} (new: {kpis['new_leads']})")
        if dry_run:
            click.echo("Dry run — nothing sent.")
            return

        if notify_summary_report(kpis, pivot, analysis, sync=True):
            click.echo("Summary report sent.")
        else:
            click.echo("Summary report NOT sent — check mail settings.")
