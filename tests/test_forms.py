"""Tests for the public lead forms — buy, sell, work with me.

Covers:
- Field validation rules per form
- HTML stripped from submitted values
- One request row + one unified application row per submission
- Sign-in required for buy / sell, anonymous work-with-me allowed
- Admin notification on submission
"""

from unittest.mock import patch

from realty.models.application import Application
from realty.models.lead_request import BuyRequest, SellRequest, WorkWithMeRequest
from realty.services import lead_service

VALID_BUY = {
    "full_name": "Bella Buyer",
    "phone_number": "5125550100",
    "email": "bella@example.com",
    "buying_budget": "$350,000",
    "preferred_area": "South Austin",
}

VALID_SELL = {
    "full_name": "Sid Seller",
    "phone_number": "5125550101",
    "email": "sid@example.com",
    "home_address": "42 Elm Street, Austin TX",
}

VALID_WORK = {
    "full_name": "Wes Worker",
    "email": "wes@example.com",
    "location": "Round Rock",
    "age": "31",
    "skill": "Photography",
    "skill_level": "Intermediate",
}


def _login_guest(client):
    return client.post("/auth/login", data={
        "email": "guest@example.com", "password": "guest123",
    })


class TestValidation:
    """Validator rules, exercised directly."""

    def test_valid_buy_form(self, app):
        cleaned, errors = lead_service.validate_buy_form(VALID_BUY)
        assert errors == {}
        assert cleaned["email"] == "bella@example.com"

    def test_buy_form_field_errors(self, app):
        data = dict(VALID_BUY, full_name="B", phone_number="123", email="not-an-email",
                    buying_budget="", preferred_area="X")
        _, errors = lead_service.validate_buy_form(data)
        assert set(errors) == {"full_name", "phone_number", "email", "buying_budget", "preferred_area"}
        assert errors["email"] == "Please enter a valid email address"

    def test_sell_form_short_address(self, app):
        _, errors = lead_service.validate_sell_form(dict(VALID_SELL, home_address="1 A"))
        assert errors == {"home_address": "Please enter your full address"}

    def test_work_form_requires_known_skill_level(self, app):
        _, errors = lead_service.validate_work_form(dict(VALID_WORK, skill_level="Expert"))
        assert errors == {"skill_level": "Skill level is required"}

    def test_work_form_age_too_long(self, app):
        _, errors = lead_service.validate_work_form(dict(VALID_WORK, age="12345678901"))
        assert "age" in errors

    def test_html_is_stripped(self, app):
        cleaned, errors = lead_service.validate_buy_form(
            dict(VALID_BUY, full_name="<b>Bella</b> Buyer<script>x</script>")
        )
        assert "<" not in cleaned["full_name"]
        assert cleaned["full_name"].startswith("Bella Buyer")

    def test_email_lowercased(self, app):
        cleaned, _ = lead_service.validate_sell_form(dict(VALID_SELL, email="SID@Example.COM"))
        assert cleaned["email"] == "sid@example.com"


class TestBuyForm:
    """Tests for /buy."""

    def test_buy_page_loads(self, client):
        resp = client.get("/buy")
        assert resp.status_code == 200
        assert b"Buy a Home" in resp.data

    def test_anonymous_post_redirects_to_login(self, client):
        resp = client.post("/buy", data=VALID_BUY)
        assert resp.status_code == 302
        assert "/auth/login" in resp.headers["Location"]
        assert BuyRequest.query.count() == 0

    @patch("realty.services.notification_service.send_email")
    def test_buy_submission_writes_both_tables(self, mock_send, client, seed_data):
        _login_guest(client)
        before_apps = Application.query.count()

        resp = client.post("/buy", data=VALID_BUY)
        assert resp.status_code == 200
        assert b"Thank you" in resp.data

        row = BuyRequest.query.filter_by(email="bella@example.com").one()
        assert row.user_id == seed_data["guest_id"]
        assert row.lead_status == "new"

        assert Application.query.count() == before_apps + 1
        application = Application.query.filter_by(email_address="bella@example.com").one()
        assert application.application_type == "buy"
        assert application.status == "new"
        assert application.form_source == "website"
        assert application.location == "South Austin"
        assert application.additional_data == {
            "buying_budget": "$350,000",
            "preferred_area": "South Austin",
        }

    @patch("realty.services.notification_service.send_email")
    def test_buy_submission_notifies_admins(self, mock_send, client, seed_data):
        _login_guest(client)
        client.post("/buy", data=VALID_BUY)

        mock_send.assert_called_once()
        kwargs = mock_send.call_args.kwargs
        assert kwargs["subject"] == "New Buy Request Submission from Bella Buyer"
        assert kwargs["template"] == "emails/form_submission_notification.html"
        assert kwargs["context"]["form_fields"]["Buying Budget"] == "$350,000"

    @patch("realty.services.notification_service.send_email")
    def test_invalid_buy_rerenders_with_errors(self, mock_send, client, seed_data):
        _login_guest(client)
        resp = client.post("/buy", data=dict(VALID_BUY, phone_number="12"))
        assert resp.status_code == 422
        assert b"Please enter a valid phone number" in resp.data
        assert BuyRequest.query.count() == 1  # only the seeded row
        mock_send.assert_not_called()

    def test_signed_in_form_is_prefilled(self, client, seed_data):
        _login_guest(client)
        resp = client.get("/buy")
        assert b"guest@example.com" in resp.data
        assert b"Gina Guest" in resp.data


class TestSellForm:
    """Tests for /sell."""

    def test_anonymous_post_redirects_to_login(self, client):
        resp = client.post("/sell", data=VALID_SELL)
        assert resp.status_code == 302
        assert "/auth/login" in resp.headers["Location"]

    @patch("realty.services.notification_service.send_email")
    def test_sell_submission(self, mock_send, client, seed_data):
        _login_guest(client)
        resp = client.post("/sell", data=VALID_SELL)
        assert resp.status_code == 200

        assert SellRequest.query.filter_by(email="sid@example.com").count() == 1
        application = Application.query.filter_by(email_address="sid@example.com").one()
        assert application.application_type == "sell"
        assert application.additional_data == {"home_address": "42 Elm Street, Austin TX"}


class TestWorkForm:
    """Tests for /work-with-me."""

    @patch("realty.services.notification_service.send_email")
    def test_anonymous_submission_allowed(self, mock_send, client):
        resp = client.post("/work-with-me", data=VALID_WORK)
        assert resp.status_code == 200

        row = WorkWithMeRequest.query.filter_by(email="wes@example.com").one()
        assert row.user_id is None
        assert row.skill_level == "Intermediate"

        application = Application.query.filter_by(email_address="wes@example.com").one()
        assert application.application_type == "work"
        assert application.user_id is None
        assert application.phone_number is None
        assert application.additional_data["skill"] == "Photography"

        kwargs = mock_send.call_args.kwargs
        assert kwargs["subject"] == "New Work With Me Application Submission from Wes Worker"

    @patch("realty.services.notification_service.send_email")
    def test_signed_in_submission_links_user(self, mock_send, client, seed_data):
        _login_guest(client)
        client.post("/work-with-me", data=VALID_WORK)
        row = WorkWithMeRequest.query.filter_by(email="wes@example.com").one()
        assert row.user_id == seed_data["guest_id"]

    @patch("realty.services.notification_service.send_email")
    def test_invalid_work_submission(self, mock_send, client):
        resp = client.post("/work-with-me", data=dict(VALID_WORK, skill=""))
        assert resp.status_code == 422
        assert b"Skill is required" in resp.data
        assert WorkWithMeRequest.query.count() == 0
        assert Application.query.count() == 0


class TestPublicPages:
    """Landing, about and the footer links JSON."""

    def test_landing_page(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Elvis Sells Houses" in resp.data

    def test_about_page(self, client):
        resp = client.get("/about")
        assert resp.status_code == 200

    def test_unknown_page_404(self, client):
        resp = client.get("/no-such-page")
        assert resp.status_code == 404
