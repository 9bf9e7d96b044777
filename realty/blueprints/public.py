"""Public blueprint — marketing pages and lead-capture forms.

Route Map:
  GET       /                   — Hero / landing page
  GET       /about              — About the agent
  GET/POST  /buy                — Buy request form (sign-in required to submit)
  GET/POST  /sell               — Sell request form (sign-in required to submit)
  GET/POST  /work-with-me       — Work-with-me application (anonymous allowed)
  GET       /api/social-links   — Enabled footer links (JSON)
"""

import logging

from flask import (
    Blueprint,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from realty.extensions import db, limiter
from realty.services import lead_service, social_link_service
from realty.services.lead_service import FormValidationError

public_bp = Blueprint("public", __name__)

logger = logging.getLogger(__name__)

FORMS = {
    "buy": {
        "template": "forms/buy.html",
        "submit": lead_service.submit_buy,
        "requires_login": True,
        "thanks": "We will contact you shortly about your home search.",
    },
    "sell": {
        "template": "forms/sell.html",
        "submit": lead_service.submit_sell,
        "requires_login": True,
        "thanks": "We will contact you shortly about selling your home.",
    },
    "work": {
        "template": "forms/work.html",
        "submit": lead_service.submit_work,
        "requires_login": False,
        "thanks": "Your application will be reviewed soon.",
    },
}


@public_bp.route("/")
def index():
    return render_template("landing.html")


@public_bp.route("/about")
def about():
    return render_template("about.html")


def _handle_form(form_type):
    """Shared GET/POST handling for the three lead forms."""
    form = FORMS[form_type]

    if request.method == "POST":
        if form["requires_login"] and not current_user.is_authenticated:
            flash("You need to be signed in to submit a request.", "error")
            return redirect(url_for("auth.login", next=request.path))

        user = current_user if current_user.is_authenticated else None
        try:
            form["submit"](user, request.form)
        except FormValidationError as e:
            return render_template(
                form["template"], form_data=request.form, errors=e.errors
            ), 422
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to store {form_type} submission: {e}")
            flash("Failed to submit your request. Please try again.", "error")
            return render_template(
                form["template"], form_data=request.form, errors={}
            ), 500

        return render_template(
            "forms/submitted.html", form_type=form_type, message=form["thanks"]
        )

    # Pre-fill from the profile for signed-in users
    form_data = {}
    if current_user.is_authenticated:
        form_data = {"full_name": current_user.full_name or "", "email": current_user.email}
    return render_template(form["template"], form_data=form_data, errors={})


@public_bp.route("/buy", methods=["GET", "POST"])
@limiter.limit("10 per hour", methods=["POST"])
def buy():
    return _handle_form("buy")


@public_bp.route("/sell", methods=["GET", "POST"])
@limiter.limit("10 per hour", methods=["POST"])
def sell():
    return _handle_form("sell")


@public_bp.route("/work-with-me", methods=["GET", "POST"])
@limiter.limit("10 per hour", methods=["POST"])
def work_with_me():
    return _handle_form("work")


@public_bp.route("/api/social-links")
def social_links():
    """Enabled footer links for client-side rendering."""
    return jsonify([link.to_dict() for link in social_link_service.footer_links()])
