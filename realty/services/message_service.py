"""Message service — guest <-> admin direct messaging.

Guests write to the admin inbox (no recipient); admins reply to a guest.
Conversations are derived from the message table on every read: there is
no separate conversation record.
"""

import logging
from datetime import timezone

import bleach
from flask import current_app

from realty.extensions import db
from realty.models.message import Message
from realty.models.user import User
from realty.services import notification_service
from realty.services.crm_views import to_datetime

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return ""
    return bleach.clean(text, tags=[], strip=True).strip()


def _validate_content(content):
    text = _sanitize(content)
    if not text:
        raise ValueError("Message cannot be empty.")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValueError("Message is too long.")
    return text


def send_guest_message(user, content):
    """Store a guest's message to the agent and notify the admins.

    Commits. Raises ValueError on empty / oversized content.
    """
    text = _validate_content(content)

    msg = Message(
        sender_id=user.id,
        recipient_id=None,
        content=text,
        is_from_admin=False,
    )
    db.session.add(msg)
    db.session.commit()

    base_url = current_app.config.get("APP_BASE_URL", "http://localhost:5000")
    notification_service.notify_message(
        sender_name=user.full_name,
        sender_email=user.email,
        content=text,
        conversation_url=f"{base_url}/admin/?conversation={user.id}",
    )
    return msg


def send_admin_message(admin_user, recipient_id, content):
    """Store an admin reply to a guest. Flushes; caller commits.

    Raises:
        ValueError: If the recipient does not exist or content is empty.
    """
    text = _validate_content(content)

    recipient = db.session.get(User, recipient_id)
    if recipient is None:
        raise ValueError(f"User {recipient_id} not found.")

    msg = Message(
        sender_id=admin_user.id,
        recipient_id=recipient.id,
        content=text,
        is_from_admin=True,
    )
    db.session.add(msg)
    db.session.flush()
    return msg


def get_thread(user_id, since=None):
    """All messages to or from `user_id`, oldest first.

    Args:
        user_id: The guest whose thread to load.
        since:   Optional ISO timestamp / datetime; only newer rows returned.
    """
    query = Message.query.filter(
        db.or_(Message.sender_id == user_id, Message.recipient_id == user_id)
    )
    if since:
        since_dt = to_datetime(since).astimezone(timezone.utc)
        query = query.filter(Message.created_at > since_dt)
    return query.order_by(Message.created_at.asc(), Message.id.asc()).all()


def list_conversations():
    """One summary per guest, ordered by most recent message.

    The other party is the recipient for admin messages and the sender
    otherwise; the newest message per party supplies the preview.
    """
    messages = Message.query.order_by(Message.created_at.desc()).all()
    profiles = {u.id: u for u in User.query.all()}

    conversations = {}
    for msg in messages:
        other_id = msg.recipient_id if msg.is_from_admin else msg.sender_id
        if not other_id or other_id in conversations:
            continue
        profile = profiles.get(other_id)
        conversations[other_id] = {
            "user_id": other_id,
            "user_name": (profile.full_name if profile else None) or "Unknown",
            "user_email": profile.email if profile else "",
            "last_message": msg.content,
            "last_message_at": msg.created_at.isoformat() if msg.created_at else None,
        }
    return list(conversations.values())
