"""Admin blueprint — /admin/*

Server-rendered CRM pages. Status changes, notes, replies, the AI analysis
and the summary email are plain form POSTs here; static/poll.js refreshes
threads and tables from the JSON API in crm_api.
All routes protected by @admin_required decorator.

Route Map:
  GET  /admin/                                 — Dashboard: KPIs, pivot, charts, activity
  GET  /admin/applications                     — Unified applications table
  POST /admin/applications/<id>/status         — Change application status
  GET  /admin/leads                            — Legacy lead table
  POST /admin/leads/<type>/<id>/status         — Change legacy lead status
  POST /admin/leads/<type>/<id>/notes          — Add a note to a lead or application
  POST /admin/notes/<id>/delete                — Delete a note
  POST /admin/analysis                         — Run the AI lead analysis, show it on the dashboard
  POST /admin/summary-report                   — Email the summary report
  GET  /admin/messages                         — Conversations + thread
  POST /admin/messages/<user_id>               — Reply to a guest
  GET  /admin/settings                         — Social links editor
  POST /admin/settings                         — Save social links
"""

import json
import logging

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user

from realty.decorators import admin_required
from realty.extensions import db, limiter
from realty.models.audit import AuditEvent
from realty.models.social_link import SocialLink
from realty.services import (
    analysis_service,
    crm_views,
    lead_service,
    message_service,
    note_service,
    notification_service,
    social_link_service,
)

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

logger = logging.getLogger(__name__)


def _page_arg():
    try:
        return max(int(request.args.get("page", 1)), 1)
    except (TypeError, ValueError):
        return 1


def _date_arg(name):
    value = request.args.get(name) or None
    if value is None:
        return None
    try:
        return crm_views.parse_date(value)
    except ValueError:
        flash(f"Ignoring invalid date '{value}'.", "warning")
        return None


# ══════════════════════════════════════════════
#  DASHBOARD
# ══════════════════════════════════════════════

def _render_dashboard(analysis=None):
    records = lead_service.list_applications()
    return render_template(
        "admin/dashboard.html",
        kpis=crm_views.kpi_counts(records),
        pivot=crm_views.pivot_counts(records),
        charts=crm_views.chart_data(records),
        type_labels=crm_views.TYPE_LABELS,
        status_labels=crm_views.STATUS_LABELS,
        recent_activity=AuditEvent.recent(20),
        analysis=analysis,
    )


@admin_bp.route("/")
@admin_required
def dashboard():
    """KPI cards, type x status pivot, charts and the recent activity feed."""
    # Links in message notification emails point here with ?conversation=
    conversation = request.args.get("conversation")
    if conversation:
        return redirect(url_for("admin.messages", conversation=conversation))
    return _render_dashboard()


@admin_bp.route("/analysis", methods=["POST"])
@admin_required
@limiter.limit("10 per hour")
def run_analysis():
    """Run the AI analysis and show it above the summary-report button."""
    try:
        analysis = analysis_service.analyze_leads(lead_service.list_applications())
    except analysis_service.LeadAnalysisError as e:
        logger.warning(f"Lead analysis failed: {e}")
        flash(str(e), "error")
        return redirect(url_for("admin.dashboard"))
    return _render_dashboard(analysis=analysis)


@admin_bp.route("/summary-report", methods=["POST"])
@admin_required
@limiter.limit("10 per hour")
def summary_report():
    """Email KPIs + pivot to the admins, with the analysis the page just showed."""
    analysis = None
    raw = request.form.get("analysis")
    if raw:
        try:
            analysis = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed analysis payload on summary report.")
        if not isinstance(analysis, dict):
            analysis = None

    records = lead_service.list_applications()
    sent = notification_service.notify_summary_report(
        crm_views.kpi_counts(records),
        crm_views.pivot_counts(records),
        analysis,
        sync=True,
    )
    if sent:
        flash("Summary report sent.", "success")
    else:
        flash("Summary report could not be sent. Check the mail settings.", "error")
    return redirect(url_for("admin.dashboard"))


# ══════════════════════════════════════════════
#  APPLICATIONS (unified table)
# ══════════════════════════════════════════════

@admin_bp.route("/applications")
@admin_required
def applications():
    """Filter, sort, then either group or paginate the application rows."""
    search = request.args.get("q", "").strip()
    app_type = request.args.get("type", "all")
    status = request.args.get("status", "all")
    sort = request.args.get("sort", "created_at")
    order = request.args.get("order", "desc")
    group_by = request.args.get("group", "none")

    records = crm_views.filter_applications(
        lead_service.list_applications(),
        search=search,
        app_type=app_type,
        status=status,
        date_from=_date_arg("from"),
        date_to=_date_arg("to"),
    )
    records = crm_views.sort_records(
        records, sort, order, fields=crm_views.APPLICATION_SORT_FIELDS
    )

    groups = None
    page = None
    if group_by in ("application_type", "status"):
        groups = crm_views.group_records(records, group_by)
    else:
        page = crm_views.paginate(
            records, _page_arg(), current_app.config["APPLICATIONS_PAGE_SIZE"]
        )

    shown = records if groups is not None else page.items
    notes = note_service.notes_by_lead([r["id"] for r in shown])

    return render_template(
        "admin/applications.html",
        page=page,
        groups=groups,
        total=len(records),
        search=search,
        app_type=app_type,
        status=status,
        sort=sort,
        order=order,
        group_by=group_by,
        notes=notes,
        types=crm_views.APPLICATION_TYPES,
        statuses=crm_views.APPLICATION_STATUSES,
        type_labels=crm_views.TYPE_LABELS,
        status_labels=crm_views.STATUS_LABELS,
        sort_fields=crm_views.APPLICATION_SORT_FIELDS,
        toggle_sort=crm_views.toggle_sort,
    )


@admin_bp.route("/applications/<application_id>/status", methods=["POST"])
@admin_required
def application_status(application_id):
    new_status = request.form.get("status", "")
    try:
        lead_service.update_application_status(application_id, new_status, current_user.id)
        db.session.commit()
        flash("Status updated successfully.", "success")
    except ValueError as e:
        db.session.rollback()
        flash(str(e), "error")
    return redirect(request.referrer or url_for("admin.applications"))


# ══════════════════════════════════════════════
#  LEGACY LEADS
# ══════════════════════════════════════════════

@admin_bp.route("/leads")
@admin_required
def leads():
    search = request.args.get("q", "").strip()
    lead_type = request.args.get("type", "all")
    status = request.args.get("status", "all")
    sort = request.args.get("sort", "created_at")
    order = request.args.get("order", "desc")

    legacy = lead_service.list_legacy_requests()
    records = crm_views.unify_legacy_leads(legacy["buy"], legacy["sell"], legacy["work"])
    records = crm_views.filter_leads(records, search, lead_type, status)
    records = crm_views.sort_records(records, sort, order, fields=crm_views.LEAD_SORT_FIELDS)
    page = crm_views.paginate(records, _page_arg(), current_app.config["LEADS_PAGE_SIZE"])
    notes = note_service.notes_by_lead([lead["id"] for lead in page.items])

    return render_template(
        "admin/leads.html",
        page=page,
        search=search,
        lead_type=lead_type,
        notes=notes,
        status=status,
        sort=sort,
        order=order,
        statuses=crm_views.LEAD_STATUSES,
        sort_fields=crm_views.LEAD_SORT_FIELDS,
        toggle_sort=crm_views.toggle_sort,
    )


@admin_bp.route("/leads/<lead_type>/<lead_id>/status", methods=["POST"])
@admin_required
def lead_status(lead_type, lead_id):
    new_status = request.form.get("status", "")
    try:
        lead_service.update_lead_status(lead_type, lead_id, new_status, current_user.id)
        db.session.commit()
        flash("Lead status updated.", "success")
    except ValueError as e:
        db.session.rollback()
        flash(str(e), "error")
    return redirect(request.referrer or url_for("admin.leads"))


@admin_bp.route("/leads/<lead_type>/<lead_id>/notes", methods=["POST"])
@admin_required
def add_note(lead_type, lead_id):
    try:
        note_service.add_note(lead_id, lead_type, request.form.get("note", ""), current_user.id)
        db.session.commit()
        flash("Note added.", "success")
    except ValueError as e:
        db.session.rollback()
        flash(str(e), "error")
    return redirect(request.referrer or url_for("admin.leads"))


@admin_bp.route("/notes/<note_id>/delete", methods=["POST"])
@admin_required
def delete_note(note_id):
    try:
        note_service.delete_note(note_id, current_user.id)
        db.session.commit()
        flash("Note deleted.", "success")
    except ValueError as e:
        db.session.rollback()
        flash(str(e), "error")
    return redirect(request.referrer or url_for("admin.leads"))


# ══════════════════════════════════════════════
#  MESSAGES
# ══════════════════════════════════════════════

@admin_bp.route("/messages")
@admin_required
def messages():
    conversations = message_service.list_conversations()
    selected = request.args.get("conversation")
    if not selected and conversations:
        selected = conversations[0]["user_id"]
    thread = message_service.get_thread(selected) if selected else []
    return render_template(
        "admin/messages.html",
        conversations=conversations,
        selected=selected,
        thread=thread,
    )


@admin_bp.route("/messages/<user_id>", methods=["POST"])
@admin_required
def reply(user_id):
    try:
        message_service.send_admin_message(current_user, user_id, request.form.get("content", ""))
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        flash(str(e), "error")
    return redirect(url_for("admin.messages", conversation=user_id))


# ══════════════════════════════════════════════
#  SETTINGS (social links)
# ══════════════════════════════════════════════

@admin_bp.route("/settings", methods=["GET", "POST"])
@admin_required
def settings():
    if request.method == "POST":
        payload = [
            {
                "id": platform,
                "url": request.form.get(f"{platform}_url", ""),
                "enabled": request.form.get(f"{platform}_enabled") == "on",
            }
            for platform in SocialLink.PLATFORMS
        ]
        try:
            social_link_service.update_links(payload, actor_user_id=current_user.id)
            db.session.commit()
            flash("Social links saved.", "success")
        except ValueError as e:
            db.session.rollback()
            flash(str(e), "error")
        return redirect(url_for("admin.settings"))

    return render_template(
        "admin/settings.html",
        links=social_link_service.get_links(),
    )
