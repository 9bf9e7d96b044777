"""Notification service — admin email alerts.

One function per notification type. Each renders its HTML template and
sends it to every address in ADMIN_NOTIFY_EMAILS. A notification must
never break the action that triggered it, so failures are logged and
swallowed here rather than propagated to the caller.
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from jinja2 import TemplateError

from realty.services.email_service import send_email, send_email_sync

logger = logging.getLogger(__name__)


def _recipients():
    return list(current_app.config.get("ADMIN_NOTIFY_EMAILS") or [])


def _format_timestamp(value):
    """Human-readable timestamp, e.g. 'Monday, October 19, 2026 at 08:30 AM UTC'."""
    if not value:
        value = datetime.now(timezone.utc)
    elif isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.strftime("%A, %B %d, %Y at %I:%M %p %Z")


def _dispatch(subject, template, context, reply_to=None, sync=False):
    recipients = _recipients()
    if not recipients:
        logger.warning(f"Notification '{subject}' not sent — ADMIN_NOTIFY_EMAILS is empty.")
        return False

    context = dict(context, site_name=current_app.config.get("SITE_NAME"))
    try:
        if sync:
            return send_email_sync(
                to=recipients, subject=subject, template=template,
                context=context, reply_to=reply_to,
            )
        send_email(
            to=recipients, subject=subject, template=template,
            context=context, reply_to=reply_to,
        )
        return True
    except (TemplateError, ValueError) as e:
        logger.error(f"Failed to build notification '{subject}': {e}")
        return False


def notify_signup(full_name, email, timestamp=None):
    """A new user created an account."""
    return _dispatch(
        subject=f"New User Signup: {full_name or email}",
        template="emails/signup_notification.html",
        context={
            "full_name": full_name or "Not provided",
            "email": email,
            "signed_up_at": _format_timestamp(timestamp),
        },
        reply_to=email,
    )


def notify_message(sender_name, sender_email, content, conversation_url):
    """A guest sent a direct message to the agent."""
    return _dispatch(
        subject=f"New Message from {sender_name or sender_email}",
        template="emails/message_notification.html",
        context={
            "sender_name": sender_name or "Unknown",
            "sender_email": sender_email,
            "content": content,
            "conversation_url": conversation_url,
        },
        reply_to=sender_email,
    )


def notify_form_submission(full_name, email, form_type, form_fields):
    """A public form (buy / sell / work with me) was submitted."""
    return _dispatch(
        subject=f"New {form_type} Submission from {full_name or email}",
        template="emails/form_submission_notification.html",
        context={
            "full_name": full_name or "Unknown",
            "email": email,
            "form_type": form_type,
            "form_fields": form_fields or {},
        },
        reply_to=email,
    )


def notify_summary_report(kpis, pivot, analysis=None, sync=False):
    """Pipeline summary (KPIs + pivot, optional AI analysis) for the admins."""
    today = datetime.now(timezone.utc).strftime("%B %d, %Y")
    return _dispatch(
        subject=f"CRM Summary Report — {today}",
        template="emails/summary_report.html",
        context={
            "report_date": today,
            "kpis": kpis,
            "pivot": pivot,
            "analysis": analysis,
        },
        sync=sync,
    )
