"""CRM API blueprint — /admin/api/*

JSON endpoints behind the admin dashboard. All routes require admin access
and are CSRF-exempt (admin-only + session auth, called via XHR).
Errors come back as {"error": "..."} with a matching status code.

Route Map:
  GET    /admin/api/applications                    — Filtered / sorted / paged (or grouped) rows
  GET    /admin/api/applications/export.csv         — CSV download of the filtered rows
  POST   /admin/api/applications/<id>/status        — Change application status
  GET    /admin/api/leads                           — Legacy lead rows
  POST   /admin/api/leads/<type>/<id>/status        — Change legacy lead status
  GET    /admin/api/notes?lead_id=&lead_type=       — Notes for a lead
  POST   /admin/api/notes                           — Add a note
  DELETE /admin/api/notes/<id>                      — Delete a note
  GET    /admin/api/conversations                   — Conversation list
  GET    /admin/api/conversations/<user_id>         — Thread (optionally ?since=)
  POST   /admin/api/conversations/<user_id>         — Reply to a guest
  GET    /admin/api/changes/<table>?since=          — Poll-based change feed
  POST   /admin/api/analysis                        — AI lead analysis
  POST   /admin/api/summary-report                  — Email the summary report
  GET    /admin/api/social-links                    — All platform links
  PUT    /admin/api/social-links                    — Save platform links
  GET    /admin/api/users                           — User profiles
  GET    /admin/api/kpis                            — KPIs, pivot, charts, activity feed
"""

import logging

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user

from realty.decorators import admin_required
from realty.extensions import db, limiter
from realty.models.application import Application
from realty.models.audit import AuditEvent
from realty.models.lead_note import LeadNote
from realty.models.lead_request import REQUEST_MODELS
from realty.models.user import User
from realty.services import (
    analysis_service,
    crm_views,
    lead_service,
    message_service,
    note_service,
    notification_service,
    realtime_service,
    social_link_service,
)

crm_api_bp = Blueprint("crm_api", __name__, url_prefix="/admin/api")

logger = logging.getLogger(__name__)


def _json_body():
    return request.get_json(silent=True) or {}


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _filtered_applications():
    """Apply the list-view query args to the application records.

    Raises:
        ValueError: On a malformed date bound.
    """
    records = crm_views.filter_applications(
        lead_service.list_applications(),
        search=request.args.get("q", "").strip(),
        app_type=request.args.get("type", "all"),
        status=request.args.get("status", "all"),
        date_from=request.args.get("from") or None,
        date_to=request.args.get("to") or None,
    )
    return crm_views.sort_records(
        records,
        request.args.get("sort", "created_at"),
        request.args.get("order", "desc"),
        fields=crm_views.APPLICATION_SORT_FIELDS,
    )


# ─── Applications ────────────────────────────────────────────────

@crm_api_bp.route("/applications")
@admin_required
def api_applications():
    try:
        records = _filtered_applications()
    except ValueError:
        return jsonify({"error": "Dates must be YYYY-MM-DD"}), 400

    group_by = request.args.get("group", "none")
    if group_by in ("application_type", "status"):
        groups = crm_views.group_records(records, group_by)
        return jsonify({
            "group": group_by,
            "total": len(records),
            "groups": [{"key": k, "items": v} for k, v in groups.items()],
        })

    page = crm_views.paginate(
        records,
        _int_arg("page", 1),
        current_app.config["APPLICATIONS_PAGE_SIZE"],
    )
    return jsonify(page.to_dict())


@crm_api_bp.route("/applications/export.csv")
@admin_required
def api_export_applications():
    try:
        records = _filtered_applications()
    except ValueError:
        return jsonify({"error": "Dates must be YYYY-MM-DD"}), 400

    return Response(
        crm_views.export_applications_csv(records),
        mimetype="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{crm_views.export_filename()}"'
        },
    )


@crm_api_bp.route("/applications/<application_id>/status", methods=["POST"])
@admin_required
def api_application_status(application_id):
    if db.session.get(Application, application_id) is None:
        return jsonify({"error": "Application not found"}), 404

    try:
        application = lead_service.update_application_status(
            application_id, _json_body().get("status", ""), current_user.id
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    db.session.commit()
    return jsonify(application.to_dict())


# ─── Legacy leads ────────────────────────────────────────────────

@crm_api_bp.route("/leads")
@admin_required
def api_leads():
    legacy = lead_service.list_legacy_requests()
    records = crm_views.unify_legacy_leads(legacy["buy"], legacy["sell"], legacy["work"])
    records = crm_views.filter_leads(
        records,
        search=request.args.get("q", "").strip(),
        lead_type=request.args.get("type", "all"),
        status=request.args.get("status", "all"),
    )
    records = crm_views.sort_records(
        records,
        request.args.get("sort", "created_at"),
        request.args.get("order", "desc"),
        fields=crm_views.LEAD_SORT_FIELDS,
    )
    page = crm_views.paginate(
        records,
        _int_arg("page", 1),
        current_app.config["LEADS_PAGE_SIZE"],
    )
    result = page.to_dict()
    result["kpis"] = crm_views.kpi_counts(records, type_key="type", status_key="lead_status")
    return jsonify(result)


@crm_api_bp.route("/leads/<lead_type>/<lead_id>/status", methods=["POST"])
@admin_required
def api_lead_status(lead_type, lead_id):
    model = REQUEST_MODELS.get(lead_type)
    if model is not None and db.session.get(model, lead_id) is None:
        return jsonify({"error": "Lead not found"}), 404

    try:
        lead = lead_service.update_lead_status(
            lead_type, lead_id, _json_body().get("status", ""), current_user.id
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    db.session.commit()
    return jsonify(lead.to_dict())


# ─── Notes ───────────────────────────────────────────────────────

@crm_api_bp.route("/notes")
@admin_required
def api_notes():
    lead_id = request.args.get("lead_id", "")
    lead_type = request.args.get("lead_type", "")
    if not lead_id or lead_type not in note_service.LEAD_TYPES:
        return jsonify({"error": "lead_id and a valid lead_type are required"}), 400
    notes = note_service.list_notes(lead_id, lead_type)
    return jsonify([n.to_dict() for n in notes])


@crm_api_bp.route("/notes", methods=["POST"])
@admin_required
def api_add_note():
    data = _json_body()
    try:
        note = note_service.add_note(
            data.get("lead_id", ""),
            data.get("lead_type", ""),
            data.get("note", ""),
            current_user.id,
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    db.session.commit()
    return jsonify(note.to_dict()), 201


@crm_api_bp.route("/notes/<note_id>", methods=["DELETE"])
@admin_required
def api_delete_note(note_id):
    if db.session.get(LeadNote, note_id) is None:
        return jsonify({"error": "Note not found"}), 404
    note_service.delete_note(note_id, current_user.id)
    db.session.commit()
    return jsonify({"ok": True})


# ─── Messaging ───────────────────────────────────────────────────

@crm_api_bp.route("/conversations")
@admin_required
def api_conversations():
    return jsonify(message_service.list_conversations())


@crm_api_bp.route("/conversations/<user_id>")
@admin_required
def api_thread(user_id):
    since = request.args.get("since") or None
    try:
        thread = message_service.get_thread(user_id, since=since)
    except ValueError:
        return jsonify({"error": "Invalid 'since' timestamp"}), 400
    return jsonify([m.to_dict() for m in thread])


@crm_api_bp.route("/conversations/<user_id>", methods=["POST"])
@admin_required
def api_reply(user_id):
    if db.session.get(User, user_id) is None:
        return jsonify({"error": "User not found"}), 404
    try:
        msg = message_service.send_admin_message(
            current_user, user_id, _json_body().get("content", "")
        )
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    db.session.commit()
    return jsonify(msg.to_dict()), 201


# ─── Change feed ─────────────────────────────────────────────────

@crm_api_bp.route("/changes/<table>")
@admin_required
def api_changes(table):
    if table not in realtime_service.WATCHED_TABLES:
        return jsonify({"error": f"Unknown table '{table}'"}), 404
    try:
        return jsonify(realtime_service.changes_since(table, request.args.get("since") or None))
    except ValueError:
        return jsonify({"error": "Invalid 'since' timestamp"}), 400


# ─── AI analysis + summary report ────────────────────────────────

@crm_api_bp.route("/analysis", methods=["POST"])
@admin_required
@limiter.limit("10 per hour")
def api_analysis():
    records = lead_service.list_applications()
    try:
        analysis = analysis_service.analyze_leads(records)
    except analysis_service.LeadAnalysisError as e:
        logger.warning(f"Lead analysis failed: {e}")
        return jsonify({"error": str(e)}), e.status_code
    return jsonify({"analysis": analysis})


@crm_api_bp.route("/summary-report", methods=["POST"])
@admin_required
@limiter.limit("10 per hour")
def api_summary_report():
    records = lead_service.list_applications()
    analysis = _json_body().get("analysis")
    sent = notification_service.notify_summary_report(
        crm_views.kpi_counts(records),
        crm_views.pivot_counts(records),
        analysis if isinstance(analysis, dict) else None,
        sync=True,
    )
    if not sent:
        return jsonify({"error": "Failed to send summary report"}), 500
    return jsonify({"success": True})


# ─── Social links ────────────────────────────────────────────────

@crm_api_bp.route("/social-links")
@admin_required
def api_social_links():
    return jsonify([link.to_dict() for link in social_link_service.get_links()])


@crm_api_bp.route("/social-links", methods=["PUT"])
@admin_required
def api_update_social_links():
    data = request.get_json(silent=True)
    try:
        links = social_link_service.update_links(data, actor_user_id=current_user.id)
    except ValueError as e:
        db.session.rollback()
        return jsonify({"error": str(e)}), 400
    db.session.commit()
    return jsonify([link.to_dict() for link in links])


# ─── Users + KPIs ────────────────────────────────────────────────

@crm_api_bp.route("/users")
@admin_required
def api_users():
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify([u.to_dict() for u in users])


@crm_api_bp.route("/kpis")
@admin_required
def api_kpis():
    records = lead_service.list_applications()
    return jsonify({
        "kpis": crm_views.kpi_counts(records),
        "pivot": crm_views.pivot_counts(records),
        "charts": crm_views.chart_data(records),
        "recent_activity": [e.to_dict() for e in AuditEvent.recent(20)],
    })
