"""Tests for the admin-edited footer social links."""

import pytest

from realty.extensions import db
from realty.models.audit import AuditEvent
from realty.models.social_link import SocialLink
from realty.services import social_link_service


def _login_admin(client):
    client.post("/auth/login", data={"email": "admin@realty.local", "password": "admin123"})


class TestSocialLinkService:

    def test_defaults_created_disabled(self, app):
        links = social_link_service.get_links()
        assert [link.id for link in links] == SocialLink.PLATFORMS
        assert not any(link.enabled for link in links)
        assert all(link.url == "" for link in links)

    def test_ensure_defaults_is_idempotent(self, app):
        assert social_link_service.ensure_defaults() == SocialLink.PLATFORMS
        db.session.commit()
        assert social_link_service.ensure_defaults() == []
        assert SocialLink.query.count() == 5

    def test_update_links(self, app):
        links = social_link_service.update_links([
            {"id": "instagram", "url": " https://instagram.com/elvis ", "enabled": True},
            {"id": "youtube", "url": "", "enabled": False},
        ])
        db.session.commit()
        by_id = {link.id: link for link in links}
        assert by_id["instagram"].url == "https://instagram.com/elvis"
        assert by_id["instagram"].enabled is True
        assert AuditEvent.query.filter_by(action="social_links.updated").count() == 1

    def test_rejects_non_http_url(self, app):
        with pytest.raises(ValueError, match="http"):
            social_link_service.update_links([
                {"id": "facebook", "url": "javascript:alert(1)", "enabled": True},
            ])

    def test_rejects_unknown_platform(self, app):
        with pytest.raises(ValueError, match="Unknown social platform"):
            social_link_service.update_links([{"id": "myspace", "url": "", "enabled": False}])

    def test_rejects_non_list(self, app):
        with pytest.raises(ValueError):
            social_link_service.update_links({"id": "instagram"})

    def test_footer_only_enabled_with_url(self, app):
        social_link_service.update_links([
            {"id": "instagram", "url": "https://instagram.com/elvis", "enabled": True},
            {"id": "facebook", "url": "", "enabled": True},
            {"id": "linkedin", "url": "https://linkedin.com/in/elvis", "enabled": False},
        ])
        db.session.commit()
        assert [link.id for link in social_link_service.footer_links()] == ["instagram"]


class TestSocialLinkRoutes:

    def _enable_instagram(self):
        social_link_service.update_links([
            {"id": "instagram", "url": "https://instagram.com/elvis", "enabled": True},
            {"id": "linkedin", "url": "https://linkedin.com/in/elvis", "enabled": False},
        ])
        db.session.commit()

    def test_public_api(self, client):
        self._enable_instagram()
        data = client.get("/api/social-links").get_json()
        assert data == [{
            "id": "instagram",
            "label": "Instagram",
            "url": "https://instagram.com/elvis",
            "enabled": True,
        }]

    def test_footer_rendered(self, client):
        self._enable_instagram()
        resp = client.get("/")
        assert b'href="https://instagram.com/elvis"' in resp.data
        assert b"linkedin.com/in/elvis" not in resp.data

    def test_admin_api_get_and_put(self, client, seed_data):
        _login_admin(client)
        assert len(client.get("/admin/api/social-links").get_json()) == 5

        resp = client.put("/admin/api/social-links", json=[
            {"id": "youtube", "url": "https://youtube.com/@elvis", "enabled": True},
        ])
        assert resp.status_code == 200
        youtube = next(link for link in resp.get_json() if link["id"] == "youtube")
        assert youtube["enabled"] is True

    def test_admin_api_put_invalid(self, client, seed_data):
        _login_admin(client)
        resp = client.put("/admin/api/social-links", json=[
            {"id": "youtube", "url": "ftp://example.com", "enabled": True},
        ])
        assert resp.status_code == 400
        assert db.session.get(SocialLink, "youtube") is None or \
            db.session.get(SocialLink, "youtube").enabled is False

    def test_settings_page(self, client, seed_data):
        _login_admin(client)
        resp = client.get("/admin/settings")
        assert resp.status_code == 200
        assert b"Twitter / X" in resp.data

        resp = client.post("/admin/settings", data={
            "facebook_url": "https://facebook.com/elvis",
            "facebook_enabled": "on",
        })
        assert resp.status_code == 302
        facebook = db.session.get(SocialLink, "facebook")
        assert facebook.enabled is True
        assert facebook.url == "https://facebook.com/elvis"
        assert db.session.get(SocialLink, "instagram").enabled is False

    def test_settings_requires_admin(self, client, seed_data):
        client.post("/auth/login", data={"email": "guest@example.com", "password": "guest123"})
        assert client.get("/admin/settings").status_code == 403
