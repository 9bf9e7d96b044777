"""Lead service — public form validation, submission and status changes.

Each public form (buy / sell / work with me) writes exactly one row to its
type-specific request table and one row to the unified applications_crm
table, then emails the admins.

Validation mirrors the public form rules: every validator returns
(cleaned, errors) where `errors` maps form field name -> message.

Functions commit on success (form submissions are a single unit of work);
status helpers flush and leave the commit to the caller.
"""

import logging
import re

import bleach

from realty.extensions import db
from realty.models.application import Application
from realty.models.audit import AuditEvent
from realty.models.lead_request import (
    LEAD_STATUSES,
    REQUEST_MODELS,
    BuyRequest,
    SellRequest,
    WorkWithMeRequest,
)
from realty.services import notification_service

logger = logging.getLogger(__name__)

# Simple email regex — not exhaustive, just sanity-check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

FORM_TYPE_NAMES = {
    "buy": "Buy Request",
    "sell": "Sell Request",
    "work": "Work With Me Application",
}


class FormValidationError(ValueError):
    """Raised when a public form fails validation. Carries per-field errors."""

    def __init__(self, errors):
        super().__init__(" ".join(errors.values()))
        self.errors = errors


def _clean(value):
    """Strip HTML tags and surrounding whitespace from a form value."""
    if value is None:
        return ""
    return bleach.clean(str(value), tags=[], strip=True).strip()


def _check_length(errors, field, value, min_len, max_len, message):
    if len(value) < min_len:
        errors[field] = message
    elif len(value) > max_len:
        errors[field] = f"Must be at most {max_len} characters."


def _check_email(errors, field, value):
    if not value or not EMAIL_RE.match(value):
        errors[field] = "Please enter a valid email address"
    elif len(value) > 255:
        errors[field] = "Must be at most 255 characters."


# ──────────────────────────────────────────────
#  Validation
# ──────────────────────────────────────────────

def validate_buy_form(data):
    """Validate the buy form. Returns (cleaned, errors)."""
    cleaned = {
        "full_name": _clean(data.get("full_name")),
        "phone_number": _clean(data.get("phone_number")),
        "email": _clean(data.get("email")).lower(),
        "buying_budget": _clean(data.get("buying_budget")),
        "preferred_area": _clean(data.get("preferred_area")),
    }
    errors = {}
    _check_length(errors, "full_name", cleaned["full_name"], 2, 100,
                  "Name must be at least 2 characters")
    _check_length(errors, "phone_number", cleaned["phone_number"], 10, 20,
                  "Please enter a valid phone number")
    _check_email(errors, "email", cleaned["email"])
    _check_length(errors, "buying_budget", cleaned["buying_budget"], 1, 100,
                  "Please enter your budget")
    _check_length(errors, "preferred_area", cleaned["preferred_area"], 2, 200,
                  "Please enter your preferred area")
    return cleaned, errors


def validate_sell_form(data):
    """Validate the sell form. Returns (cleaned, errors)."""
    cleaned = {
        "full_name": _clean(data.get("full_name")),
        "phone_number": _clean(data.get("phone_number")),
        "email": _clean(data.get("email")).lower(),
        "home_address": _clean(data.get("home_address")),
    }
    errors = {}
    _check_length(errors, "full_name", cleaned["full_name"], 2, 100,
                  "Name must be at least 2 characters")
    _check_length(errors, "phone_number", cleaned["phone_number"], 10, 20,
                  "Please enter a valid phone number")
    _check_email(errors, "email", cleaned["email"])
    _check_length(errors, "home_address", cleaned["home_address"], 5, 300,
                  "Please enter your full address")
    return cleaned, errors


def validate_work_form(data):
    """Validate the work-with-me form. Returns (cleaned, errors)."""
    cleaned = {
        "full_name": _clean(data.get("full_name")),
        "email": _clean(data.get("email")).lower(),
        "location": _clean(data.get("location")),
        "age": _clean(data.get("age")),
        "skill": _clean(data.get("skill")),
        "skill_level": _clean(data.get("skill_level")),
    }
    errors = {}
    _check_length(errors, "full_name", cleaned["full_name"], 1, 100,
                  "Full name is required")
    _check_email(errors, "email", cleaned["email"])
    _check_length(errors, "location", cleaned["location"], 1, 200,
                  "Location is required")
    _check_length(errors, "age", cleaned["age"], 1, 10, "Age is required")
    _check_length(errors, "skill", cleaned["skill"], 1, 200, "Skill is required")
    if cleaned["skill_level"] not in WorkWithMeRequest.SKILL_LEVELS:
        errors["skill_level"] = "Skill level is required"
    return cleaned, errors


# ──────────────────────────────────────────────
#  Submission
# ──────────────────────────────────────────────

def _record_submission(request_row, application, form_type, form_fields):
    db.session.add(request_row)
    db.session.add(application)
    db.session.commit()

    logger.info(
        f"{FORM_TYPE_NAMES[form_type]} submitted by "
        f"{application.full_name} <{application.email_address}>"
    )

    notification_service.notify_form_submission(
        full_name=application.full_name,
        email=application.email_address,
        form_type=FORM_TYPE_NAMES[form_type],
        form_fields=form_fields,
    )
    return application


def submit_buy(user, data):
    """Validate and store a buy request. Requires a signed-in user.

    Returns:
        The created Application row.

    Raises:
        FormValidationError: If any field is invalid.
    """
    cleaned, errors = validate_buy_form(data)
    if errors:
        raise FormValidationError(errors)

    request_row = BuyRequest(user_id=user.id, **cleaned)
    application = Application(
        user_id=user.id,
        application_type="buy",
        full_name=cleaned["full_name"],
        phone_number=cleaned["phone_number"],
        email_address=cleaned["email"],
        location=cleaned["preferred_area"],
        form_source="website",
        status="new",
        additional_data={
            "buying_budget": cleaned["buying_budget"],
            "preferred_area": cleaned["preferred_area"],
        },
    )
    return _record_submission(request_row, application, "buy", {
        "Full Name": cleaned["full_name"],
        "Phone Number": cleaned["phone_number"],
        "Email": cleaned["email"],
        "Buying Budget": cleaned["buying_budget"],
        "Preferred Area": cleaned["preferred_area"],
    })


def submit_sell(user, data):
    """Validate and store a sell request. Requires a signed-in user."""
    cleaned, errors = validate_sell_form(data)
    if errors:
        raise FormValidationError(errors)

    request_row = SellRequest(user_id=user.id, **cleaned)
    application = Application(
        user_id=user.id,
        application_type="sell",
        full_name=cleaned["full_name"],
        phone_number=cleaned["phone_number"],
        email_address=cleaned["email"],
        location=cleaned["home_address"],
        form_source="website",
        status="new",
        additional_data={"home_address": cleaned["home_address"]},
    )
    return _record_submission(request_row, application, "sell", {
        "Full Name": cleaned["full_name"],
        "Phone Number": cleaned["phone_number"],
        "Email": cleaned["email"],
        "Home Address": cleaned["home_address"],
    })


def submit_work(user, data):
    """Validate and store a work-with-me application.

    `user` may be None — anonymous applicants are accepted.
    """
    cleaned, errors = validate_work_form(data)
    if errors:
        raise FormValidationError(errors)

    user_id = user.id if user is not None else None
    request_row = WorkWithMeRequest(user_id=user_id, **cleaned)
    application = Application(
        user_id=user_id,
        application_type="work",
        full_name=cleaned["full_name"],
        phone_number=None,
        email_address=cleaned["email"],
        location=cleaned["location"],
        form_source="website",
        status="new",
        additional_data={
            "age": cleaned["age"],
            "skill": cleaned["skill"],
            "skill_level": cleaned["skill_level"],
        },
    )
    return _record_submission(request_row, application, "work", {
        "Full Name": cleaned["full_name"],
        "Email": cleaned["email"],
        "Location": cleaned["location"],
        "Age": cleaned["age"],
        "Skill": cleaned["skill"],
        "Skill Level": cleaned["skill_level"],
    })


# ──────────────────────────────────────────────
#  Reads
# ──────────────────────────────────────────────

def list_applications():
    """All unified applications as dicts, newest first."""
    rows = Application.query.order_by(Application.created_at.desc()).all()
    return [a.to_dict() for a in rows]


def list_legacy_requests():
    """The three request tables as dicts, keyed by lead type."""
    return {
        lead_type: [
            r.to_dict()
            for r in model.query.order_by(model.created_at.desc()).all()
        ]
        for lead_type, model in REQUEST_MODELS.items()
    }


def count_user_submissions(user_id):
    """Buy / sell submission counts for the guest dashboard."""
    return {
        "buy": BuyRequest.query.filter_by(user_id=user_id).count(),
        "sell": SellRequest.query.filter_by(user_id=user_id).count(),
    }


# ──────────────────────────────────────────────
#  Status changes
# ──────────────────────────────────────────────

def update_application_status(application_id, new_status, actor_user_id):
    """Set an application's status.

    Any status may follow any other; only unknown values are rejected.

    Raises:
        ValueError: If the application is not found or the status is invalid.
    """
    if new_status not in Application.STATUSES:
        raise ValueError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(Application.STATUSES)}"
        )

    application = db.session.get(Application, application_id)
    if application is None:
        raise ValueError(f"Application {application_id} not found.")

    old_status = application.status
    if old_status == new_status:
        return application  # no-op

    application.status = new_status
    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="application.status_changed",
        metadata_={
            "application_id": application_id,
            "old_status": old_status,
            "new_status": new_status,
        },
    ))
    db.session.flush()
    return application


def update_lead_status(lead_type, lead_id, new_status, actor_user_id):
    """Set `lead_status` on a buy / sell / work request row.

    Raises:
        ValueError: If the type, status or row is invalid.
    """
    model = REQUEST_MODELS.get(lead_type)
    if model is None:
        raise ValueError(f"Invalid lead type '{lead_type}'.")
    if new_status not in LEAD_STATUSES:
        raise ValueError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(LEAD_STATUSES)}"
        )

    lead = db.session.get(model, lead_id)
    if lead is None:
        raise ValueError(f"Lead {lead_id} not found.")

    old_status = lead.lead_status
    if old_status == new_status:
        return lead

    lead.lead_status = new_status
    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="lead.status_changed",
        metadata_={
            "lead_id": lead_id,
            "lead_type": lead_type,
            "old_status": old_status,
            "new_status": new_status,
        },
    ))
    db.session.flush()
    return lead
