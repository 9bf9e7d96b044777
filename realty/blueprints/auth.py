"""Auth blueprint — /auth/*

Sign-up, sign-in, sign-out and the password reset flow.
Admins are regular users whose role is "admin" AND whose email is on the
ADMIN_EMAILS allow-list (see User.is_admin).
"""

import logging
import re
import secrets
from datetime import datetime, timedelta, timezone

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from realty.extensions import db, limiter
from realty.models.audit import AuditEvent
from realty.models.user import User, is_approved_admin_email
from realty.services import notification_service
from realty.services.email_service import send_email

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128


def _home_for(user):
    """Where a freshly signed-in user lands."""
    if user.is_admin:
        return url_for("admin.dashboard")
    return url_for("guest.dashboard")


def _safe_next(next_url, fallback):
    # Safety: only allow relative redirects (prevent open redirect)
    if not next_url or not next_url.startswith("/") or next_url.startswith("//"):
        return fallback
    return next_url


def _as_aware(dt):
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


# ──────────────────────────────────────────────
# GET/POST /auth/signup
# ──────────────────────────────────────────────

@auth_bp.route("/signup", methods=["GET", "POST"])
@limiter.limit("10 per minute", methods=["POST"])
def signup():
    """Open sign-up. Allow-listed emails get the admin role."""
    if current_user.is_authenticated:
        return redirect(_home_for(current_user))

    if request.method == "POST":
        email = request.form.get("email", "").lower().strip()
        password = request.form.get("password", "")
        full_name = request.form.get("full_name", "").strip()

        errors = []
        if not email or not EMAIL_RE.match(email):
            errors.append("Please enter a valid email address.")
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        elif len(password) > MAX_PASSWORD_LENGTH:
            errors.append("Password is too long.")
        if len(full_name) > 100:
            errors.append("Name is too long.")
        if email and User.query.filter_by(email=email).first():
            errors.append("An account with this email already exists.")

        if errors:
            for err in errors:
                flash(err, "error")
            return render_template(
                "auth/signup.html", email=email, full_name=full_name
            ), 422

        user = User(
            email=email,
            password_hash=generate_password_hash(password),
            full_name=full_name or None,
            role="admin" if is_approved_admin_email(email) else "guest",
        )
        db.session.add(user)
        db.session.flush()

        db.session.add(AuditEvent(
            actor_user_id=user.id,
            action="user.signed_up",
            metadata_={"email": email, "role": user.role},
        ))
        db.session.commit()

        notification_service.notify_signup(
            full_name=user.full_name,
            email=user.email,
            timestamp=datetime.now(timezone.utc),
        )

        login_user(user)
        flash("Welcome! Your account has been created.", "success")
        return redirect(_home_for(user))

    return render_template("auth/signup.html")


# ──────────────────────────────────────────────
# GET/POST /auth/login?next=/dashboard
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit("15 per minute", methods=["POST"])
def login():
    """Standard email + password login."""
    if current_user.is_authenticated:
        return redirect(_home_for(current_user))

    if request.method == "POST":
        email = request.form.get("email", "").lower().strip()
        password = request.form.get("password", "")
        remember = bool(request.form.get("remember"))
        next_field = request.form.get("next", "")

        if not email or not password:
            flash("Email and password are required.", "error")
            return render_template("auth/login.html", email=email, next_url=next_field)

        user = User.query.filter_by(email=email).first()

        if user is None or not check_password_hash(user.password_hash, password):
            flash("Invalid email or password. Please try again.", "error")
            return render_template("auth/login.html", email=email, next_url=next_field)

        if not user.is_active:
            flash("Your account has been deactivated.", "error")
            return render_template("auth/login.html", email=email, next_url=next_field)

        login_user(user, remember=remember)

        next_url = next_field or request.args.get("next", "")
        flash("Signed in successfully.", "success")
        return redirect(_safe_next(next_url, _home_for(user)))

    return render_template(
        "auth/login.html",
        next_url=request.args.get("next", ""),
    )


# ──────────────────────────────────────────────
# GET /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout")
def logout():
    """Log out and redirect to the sign-in page."""
    logout_user()
    flash("You have been signed out.", "info")
    return redirect(url_for("auth.login"))


# ──────────────────────────────────────────────
# GET/POST /auth/forgot-password
# ──────────────────────────────────────────────

@auth_bp.route("/forgot-password", methods=["GET", "POST"])
@limiter.limit("5 per hour", methods=["POST"])
def forgot_password():
    """Email a one-hour reset link.

    Answers the same way whether or not the email exists so the form
    can't be used to discover accounts.
    """
    if request.method == "POST":
        email = request.form.get("email", "").lower().strip()
        user = User.query.filter_by(email=email).first() if email else None

        if user is not None and user.is_active:
            hours = current_app.config.get("PASSWORD_RESET_HOURS", 1)
            user.password_reset_token = secrets.token_urlsafe(32)
            user.password_reset_expires = datetime.now(timezone.utc) + timedelta(hours=hours)
            db.session.commit()

            base_url = current_app.config.get("APP_BASE_URL", "http://localhost:5000")
            reset_url = f"{base_url}/auth/reset-password?token={user.password_reset_token}"
            send_email(
                to=user.email,
                subject="Reset your password",
                template="emails/password_reset.html",
                context={
                    "full_name": user.full_name,
                    "reset_url": reset_url,
                    "hours": hours,
                    "site_name": current_app.config.get("SITE_NAME"),
                },
            )
            logger.info(f"Password reset link sent to {user.email}")

        return render_template("auth/forgot_password.html", sent=True, email=email)

    return render_template("auth/forgot_password.html", sent=False)


# ──────────────────────────────────────────────
# GET/POST /auth/reset-password?token=<token>
# ──────────────────────────────────────────────

@auth_bp.route("/reset-password", methods=["GET", "POST"])
def reset_password():
    """Set a new password from a reset link."""
    token = request.args.get("token") or request.form.get("token")

    user = None
    if token:
        user = User.query.filter_by(password_reset_token=token).first()

    expires = _as_aware(user.password_reset_expires) if user else None
    if user is None or expires is None or expires < datetime.now(timezone.utc):
        return render_template("auth/reset_password.html", invalid=True)

    if request.method == "POST":
        password = request.form.get("password", "")
        confirm = request.form.get("confirm_password", "")

        errors = []
        if len(password) < MIN_PASSWORD_LENGTH:
            errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        elif len(password) > MAX_PASSWORD_LENGTH:
            errors.append("Password is too long.")
        if password != confirm:
            errors.append("Passwords don't match.")

        if errors:
            for err in errors:
                flash(err, "error")
            return render_template("auth/reset_password.html", token=token), 422

        user.password_hash = generate_password_hash(password)
        user.password_reset_token = None
        user.password_reset_expires = None
        db.session.add(AuditEvent(
            actor_user_id=user.id,
            action="user.password_reset",
            metadata_={"email": user.email},
        ))
        db.session.commit()

        logout_user()
        flash("Your password has been reset. Please sign in.", "success")
        return redirect(url_for("auth.login"))

    return render_template("auth/reset_password.html", token=token)
