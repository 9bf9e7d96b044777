"""Tests for response hardening: security headers, CSRF, error pages."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError


@pytest.fixture
def csrf_enabled(app):
    app.config["WTF_CSRF_ENABLED"] = True
    yield
    app.config["WTF_CSRF_ENABLED"] = False


class TestSecurityHeaders:

    def test_headers_on_every_response(self, client):
        resp = client.get("/")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert "frame-ancestors 'none'" in resp.headers["Content-Security-Policy"]

    def test_headers_on_json(self, client):
        resp = client.get("/api/social-links")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


class TestCsrf:

    def test_public_form_requires_token(self, client, csrf_enabled):
        resp = client.post("/buy", data={"full_name": "No Token", "email": "x@example.com"})
        assert resp.status_code == 400

    def test_crm_api_is_exempt(self, client, seed_data):
        client.post("/auth/login", data={"email": "admin@realty.local", "password": "admin123"})
        client.application.config["WTF_CSRF_ENABLED"] = True
        try:
            resp = client.post("/admin/api/notes", json={
                "lead_id": seed_data["buy_req_id"], "lead_type": "buy", "note": "no token needed",
            })
        finally:
            client.application.config["WTF_CSRF_ENABLED"] = False
        assert resp.status_code == 201


class TestErrorPages:

    def test_404_page(self, client):
        resp = client.get("/no-such-page")
        assert resp.status_code == 404
        assert b"<html" in resp.data.lower()

    def test_403_page(self, client, seed_data):
        client.post("/auth/login", data={"email": "guest@example.com", "password": "guest123"})
        resp = client.get("/admin/leads")
        assert resp.status_code == 403
        assert b"<html" in resp.data.lower()

    def test_api_errors_are_json(self, client, seed_data):
        client.post("/auth/login", data={"email": "guest@example.com", "password": "guest123"})
        resp = client.get("/admin/api/leads")
        assert resp.status_code == 403
        assert resp.get_json() == {"error": "Forbidden"}

    @patch("realty.services.social_link_service.footer_links")
    def test_pages_render_when_footer_query_fails(self, mock_links, client):
        mock_links.side_effect = OperationalError("SELECT", {}, Exception("database is down"))
        assert client.get("/").status_code == 200
        resp = client.get("/no-such-page")
        assert resp.status_code == 404
        assert b"<html" in resp.data.lower()
