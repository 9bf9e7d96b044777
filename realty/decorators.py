"""
Custom route decorators for access control.

- admin_required: user is logged in AND passes the admin allow-list check.
- guest_required: user is logged in and is NOT an admin (admins are sent
  to the CRM instead of the guest dashboard).

These gate the UI. Row-level protection is the data store's job.
"""

from functools import wraps

from flask import abort, redirect, url_for
from flask_login import current_user, login_required


def admin_required(f):
    """Require login + User.is_admin (role AND allow-listed email)."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if not current_user.is_admin:
            abort(403)
        return f(*args, **kwargs)

    return decorated


def guest_required(f):
    """Require login; admins are redirected to the admin dashboard."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        if current_user.is_admin:
            return redirect(url_for("admin.dashboard"))
        return f(*args, **kwargs)

    return decorated
