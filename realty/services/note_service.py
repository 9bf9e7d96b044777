"""Lead note service — internal staff annotations on a lead.

Note text is sanitized with bleach.clean() to strip HTML tags.
Functions flush but do NOT commit — the caller commits.
"""

import bleach

from realty.extensions import db
from realty.models.audit import AuditEvent
from realty.models.lead_note import LeadNote

LEAD_TYPES = ["buy", "sell", "work"]


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def list_notes(lead_id, lead_type):
    """Notes for one lead, newest first."""
    return (
        LeadNote.query
        .filter_by(lead_id=lead_id, lead_type=lead_type)
        .order_by(LeadNote.created_at.desc())
        .all()
    )


def notes_by_lead(lead_ids):
    """Notes for a page of leads in one query: {lead_id: [notes newest first]}."""
    lead_ids = [i for i in lead_ids if i]
    if not lead_ids:
        return {}
    notes = (
        LeadNote.query
        .filter(LeadNote.lead_id.in_(lead_ids))
        .order_by(LeadNote.created_at.desc())
        .all()
    )
    grouped = {}
    for note in notes:
        grouped.setdefault(note.lead_id, []).append(note)
    return grouped


def add_note(lead_id, lead_type, text, author_user_id):
    """Attach a note to a lead.

    Raises:
        ValueError: If the lead type is unknown or the note is empty.
    """
    if lead_type not in LEAD_TYPES:
        raise ValueError(
            f"Invalid lead type '{lead_type}'. Must be one of: {', '.join(LEAD_TYPES)}"
        )
    if not lead_id:
        raise ValueError("Lead id is required.")

    note_text = _sanitize(text)
    if not note_text:
        raise ValueError("Note cannot be empty.")

    note = LeadNote(
        lead_id=lead_id,
        lead_type=lead_type,
        note=note_text,
        created_by=author_user_id,
    )
    db.session.add(note)
    db.session.flush()

    db.session.add(AuditEvent(
        actor_user_id=author_user_id,
        action="note.created",
        metadata_={"note_id": note.id, "lead_id": lead_id, "lead_type": lead_type},
    ))
    db.session.flush()
    return note


def delete_note(note_id, actor_user_id):
    """Delete a note. Any admin may delete any note.

    Raises:
        ValueError: If the note does not exist.
    """
    note = db.session.get(LeadNote, note_id)
    if note is None:
        raise ValueError(f"Note {note_id} not found.")

    db.session.add(AuditEvent(
        actor_user_id=actor_user_id,
        action="note.deleted",
        metadata_={
            "note_id": note_id,
            "lead_id": note.lead_id,
            "lead_type": note.lead_type,
        },
    ))
    db.session.delete(note)
    db.session.flush()
