"""Type-specific request tables (legacy lead tables).

Each public form writes one row here plus one row in applications_crm.
The legacy lead table in the CRM reads these three tables and tracks
its own `lead_status` pipeline: new -> contacted -> in progress -> closed
"""

import uuid

from realty.extensions import db


LEAD_STATUSES = ["new", "contacted", "in progress", "closed"]


class _LeadRequestMixin:
    """Columns shared by every request table."""

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    lead_status = db.Column(db.String(50), default="new", nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def _base_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "lead_status": self.lead_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class BuyRequest(_LeadRequestMixin, db.Model):
    __tablename__ = "buy_requests"

    LEAD_TYPE = "buy"

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    phone_number = db.Column(db.String(50), nullable=False)
    buying_budget = db.Column(db.String(100), nullable=False)
    preferred_area = db.Column(db.String(200), nullable=False)

    def to_dict(self):
        data = self._base_dict()
        data.update(
            phone_number=self.phone_number,
            buying_budget=self.buying_budget,
            preferred_area=self.preferred_area,
        )
        return data

    def __repr__(self):
        return f"<BuyRequest {self.full_name}>"


class SellRequest(_LeadRequestMixin, db.Model):
    __tablename__ = "sell_requests"

    LEAD_TYPE = "sell"

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    phone_number = db.Column(db.String(50), nullable=False)
    home_address = db.Column(db.String(300), nullable=False)

    def to_dict(self):
        data = self._base_dict()
        data.update(
            phone_number=self.phone_number,
            home_address=self.home_address,
        )
        return data

    def __repr__(self):
        return f"<SellRequest {self.full_name}>"


class WorkWithMeRequest(_LeadRequestMixin, db.Model):
    __tablename__ = "work_with_me_requests"

    LEAD_TYPE = "work"

    SKILL_LEVELS = ["Beginner", "Intermediate", "Advanced"]

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )  # anonymous applicants allowed
    location = db.Column(db.String(200), nullable=False)
    age = db.Column(db.String(10), nullable=False)
    skill = db.Column(db.String(200), nullable=False)
    skill_level = db.Column(db.String(20), nullable=False)

    def to_dict(self):
        data = self._base_dict()
        data.update(
            location=self.location,
            age=self.age,
            skill=self.skill,
            skill_level=self.skill_level,
        )
        return data

    def __repr__(self):
        return f"<WorkWithMeRequest {self.full_name}>"


REQUEST_MODELS = {
    "buy": BuyRequest,
    "sell": SellRequest,
    "work": WorkWithMeRequest,
}
