"""Application model (unified CRM lead table).

Every buy / sell / work-with-me submission lands here in addition to its
type-specific request table. The admin CRM reads only this table for the
application table, KPI cards, charts, pivot and AI analysis.

Pipeline: new -> in_review / contacted -> approved / rejected
"""

import uuid

from realty.extensions import db
from realty.models.timestamps import utcnow


class Application(db.Model):
    __tablename__ = "applications_crm"

    TYPES = ["buy", "sell", "work"]

    STATUSES = [
        "new",
        "in_review",
        "contacted",
        "approved",
        "rejected",
    ]

    TYPE_LABELS = {
        "buy": "Buying a House",
        "sell": "Selling a House",
        "work": "Work With Me",
    }

    STATUS_LABELS = {
        "new": "New",
        "in_review": "In Review",
        "contacted": "Contacted",
        "approved": "Approved",
        "rejected": "Rejected",
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )
    application_type = db.Column(db.String(20), nullable=False)  # buy | sell | work
    full_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(50), nullable=True)
    email_address = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(300), nullable=True)
    form_source = db.Column(db.String(50), nullable=True, default="website")
    status = db.Column(db.String(50), default="new", nullable=False)
    additional_data = db.Column(db.JSON, default=dict)
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "application_type": self.application_type,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "email_address": self.email_address,
            "location": self.location,
            "form_source": self.form_source,
            "status": self.status,
            "additional_data": self.additional_data or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Application {self.full_name} ({self.application_type}/{self.status})>"
