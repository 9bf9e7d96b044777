"""Guest blueprint — /dashboard/*

Signed-in non-admin users: their own submission counts and a message
thread with the agent.

Route Map:
  GET  /dashboard                  — Dashboard page
  GET  /dashboard/messages?since=  — Thread JSON (poll-based refresh)
  POST /dashboard/messages         — Send a message to the agent
"""

import logging

from flask import Blueprint, flash, jsonify, redirect, render_template, request, url_for
from flask_login import current_user

from realty.decorators import guest_required
from realty.extensions import limiter
from realty.services import lead_service, message_service

guest_bp = Blueprint("guest", __name__, url_prefix="/dashboard")

logger = logging.getLogger(__name__)


def _wants_json():
    return request.is_json or request.accept_mimetypes.best == "application/json"


# ─── Page ────────────────────────────────────────────────────────

@guest_bp.route("")
@guest_required
def dashboard():
    counts = lead_service.count_user_submissions(current_user.id)
    thread = message_service.get_thread(current_user.id)
    return render_template(
        "guest/dashboard.html",
        counts=counts,
        messages=thread,
    )


# ─── Messages ────────────────────────────────────────────────────

@guest_bp.route("/messages", methods=["GET"])
@guest_required
def messages():
    since = request.args.get("since") or None
    try:
        thread = message_service.get_thread(current_user.id, since=since)
    except ValueError:
        return jsonify({"error": "Invalid 'since' timestamp"}), 400
    return jsonify({"messages": [m.to_dict() for m in thread]})


@guest_bp.route("/messages", methods=["POST"])
@guest_required
@limiter.limit("30 per minute")
def send_message():
    if request.is_json:
        content = (request.get_json(silent=True) or {}).get("content", "")
    else:
        content = request.form.get("content", "")

    try:
        msg = message_service.send_guest_message(current_user, content)
    except ValueError as e:
        if _wants_json():
            return jsonify({"error": str(e)}), 400
        flash(str(e), "error")
        return redirect(url_for("guest.dashboard"))

    if _wants_json():
        return jsonify(msg.to_dict()), 201
    flash("Message sent.", "success")
    return redirect(url_for("guest.dashboard"))
