"""User model.

Stores authentication credentials, profile info and the app role.
Flask-Login integration via UserMixin.

The admin role is double-gated: the stored role must be "admin" AND the
email must be on the ADMIN_EMAILS allow-list.
"""

import uuid

from flask import current_app
from flask_login import UserMixin

from realty.extensions import db


def is_approved_admin_email(email):
    """Return True if `email` is on the configured admin allow-list."""
    if not email:
        return False
    allowed = current_app.config.get("ADMIN_EMAILS") or []
    return email.strip().lower() in allowed


class User(UserMixin, db.Model):
    __tablename__ = "users"

    ROLES = ["admin", "guest"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    role = db.Column(db.String(20), default="guest", nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    password_reset_token = db.Column(db.String(255), nullable=True, index=True)
    password_reset_expires = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_admin(self):
        # DB role alone is not enough -- the email must also be approved.
        return self.role == "admin" and is_approved_admin_email(self.email)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "role": "admin" if self.is_admin else "guest",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email}>"
