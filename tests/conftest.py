"""Shared test fixtures for the realty CRM test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: admin + guest users, a few applications and legacy requests
"""

from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.security import generate_password_hash

from realty import create_app
from realty.extensions import db as _db
from realty.models.application import Application
from realty.models.lead_request import BuyRequest, SellRequest, WorkWithMeRequest
from realty.models.user import User

ADMIN_EMAIL = "admin@realty.local"
ADMIN_PASSWORD = "admin123"
GUEST_EMAIL = "guest@example.com"
GUEST_PASSWORD = "guest123"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def seed_data(app, db_session):
    """Seed an admin, a guest, three applications and one row per request table.

    Timestamps are explicit so ordering assertions don't depend on the clock.
    Returns plain ids alongside the objects.
    """
    base = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)

    admin = User(
        email=ADMIN_EMAIL,
        password_hash=generate_password_hash(ADMIN_PASSWORD),
        full_name="Admin User",
        role="admin",
    )
    guest = User(
        email=GUEST_EMAIL,
        password_hash=generate_password_hash(GUEST_PASSWORD),
        full_name="Gina Guest",
        role="guest",
    )
    _db.session.add_all([admin, guest])
    _db.session.flush()

    buy_app = Application(
        user_id=guest.id,
        application_type="buy",
        full_name="Gina Guest",
        phone_number="5551234567",
        email_address=GUEST_EMAIL,
        location="Austin",
        form_source="website",
        status="new",
        additional_data={"buying_budget": "$400k", "preferred_area": "Austin"},
        created_at=base,
    )
    sell_app = Application(
        user_id=guest.id,
        application_type="sell",
        full_name="Sam Seller",
        phone_number="5559876543",
        email_address="sam@example.com",
        location="12 Oak St, Dallas",
        form_source="website",
        status="contacted",
        additional_data={"home_address": "12 Oak St, Dallas"},
        created_at=base + timedelta(days=1),
    )
    work_app = Application(
        application_type="work",
        full_name="Wendy Worker",
        email_address="wendy@example.com",
        location="Houston",
        form_source="website",
        status="approved",
        additional_data={"age": "29", "skill": "Staging", "skill_level": "Advanced"},
        created_at=base + timedelta(days=2),
    )
    _db.session.add_all([buy_app, sell_app, work_app])

    buy_req = BuyRequest(
        user_id=guest.id,
        full_name="Gina Guest",
        email=GUEST_EMAIL,
        phone_number="5551234567",
        buying_budget="$400k",
        preferred_area="Austin",
        created_at=base,
    )
    sell_req = SellRequest(
        user_id=guest.id,
        full_name="Sam Seller",
        email="sam@example.com",
        phone_number="5559876543",
        home_address="12 Oak St, Dallas",
        lead_status="contacted",
        created_at=base + timedelta(days=1),
    )
    work_req = WorkWithMeRequest(
        full_name="Wendy Worker",
        email="wendy@example.com",
        location="Houston",
        age="29",
        skill="Staging",
        skill_level="Advanced",
        lead_status="closed",
        created_at=base + timedelta(days=2),
    )
    _db.session.add_all([buy_req, sell_req, work_req])
    _db.session.commit()

    return {
        "admin": admin,
        "admin_id": admin.id,
        "guest": guest,
        "guest_id": guest.id,
        "buy_app_id": buy_app.id,
        "sell_app_id": sell_app.id,
        "work_app_id": work_app.id,
        "buy_req_id": buy_req.id,
        "sell_req_id": sell_req.id,
        "work_req_id": work_req.id,
    }
