"""Audit trail for CRM actions.

Written alongside signups, password resets, status changes, note edits
and settings saves. The admin dashboard shows the most recent entries.
"""

import uuid

from realty.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    actor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )
    action = db.Column(db.String(100), nullable=False, index=True)  # "<entity>.<verb>"
    # Column is "metadata"; the attribute can't be, SQLAlchemy reserves it.
    metadata_ = db.Column("metadata", db.JSON, default=dict)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    actor = db.relationship("User", lazy="joined")

    @classmethod
    def recent(cls, limit=20):
        return cls.query.order_by(cls.created_at.desc()).limit(limit).all()

    def to_dict(self):
        return {
            "id": self.id,
            "action": self.action,
            "actor": (self.actor.full_name or self.actor.email) if self.actor else None,
            "metadata": self.metadata_ or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AuditEvent {self.action} by={self.actor_user_id}>"
