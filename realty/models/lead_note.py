"""LeadNote model — internal annotations on a lead.

A note points at a lead by (lead_id, lead_type) rather than a foreign key,
so the same table serves unified applications and the legacy request tables.
Any admin viewing the lead may delete any note.
"""

import uuid

from realty.extensions import db
from realty.models.timestamps import utcnow


class LeadNote(db.Model):
    __tablename__ = "lead_notes"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    lead_id = db.Column(db.String(36), nullable=False, index=True)
    lead_type = db.Column(db.String(20), nullable=False)  # buy | sell | work
    note = db.Column(db.Text, nullable=False)
    created_by = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    created_at = db.Column(
        db.DateTime(timezone=True), default=utcnow, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    # --- Relationships ---
    author = db.relationship("User", lazy="joined")

    def to_dict(self):
        return {
            "id": self.id,
            "lead_id": self.lead_id,
            "lead_type": self.lead_type,
            "note": self.note,
            "created_by": self.created_by,
            "author_name": self.author.full_name if self.author else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<LeadNote {self.lead_type}/{self.lead_id}>"
