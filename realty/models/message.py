"""Message model — direct messages between a guest and the agent.

Append-only. Guest messages have no recipient (they go to the admin
inbox); admin replies carry the guest as recipient and is_from_admin=True.
"""

import uuid

from realty.extensions import db
from realty.models.timestamps import utcnow


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    sender_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    recipient_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )
    content = db.Column(db.Text, nullable=False)
    is_from_admin = db.Column(db.Boolean, default=False, nullable=False)
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
            "sender_id": self.sender_id,
            "recipient_id": self.recipient_id,
            "content": self.content,
            "is_from_admin": self.is_from_admin,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Message {self.sender_id} -> {self.recipient_id or 'admin'}>"
