"""Realtime service — poll-based row change feed.

Clients poll `changes_since(table, cursor)` and re-render from the events;
the cursor returned with each batch is the `since` for the next poll.
The cursor is the newest row timestamp seen, never the server clock, so a
row stamped between two polls is always picked up by the next one.
"""

from datetime import timezone

from realty.extensions import db
from realty.models.application import Application
from realty.models.lead_note import LeadNote
from realty.models.message import Message
from realty.services.crm_views import to_datetime

WATCHED_TABLES = {
    "applications": Application,
    "messages": Message,
    "lead_notes": LeadNote,
}


def parse_cursor(value):
    """Parse a `since` value into an aware UTC datetime (None for empty).

    Raises:
        ValueError: If the value is not an ISO timestamp.
    """
    dt = to_datetime(value) if value else None
    return dt.astimezone(timezone.utc) if dt is not None else None


def format_cursor(value):
    dt = to_datetime(value)
    return dt.astimezone(timezone.utc).isoformat() if dt is not None else None


def changes_since(table, since=None):
    """Row-level change events for `table` after `since`.

    An event is INSERT when the row was created after `since`, UPDATE when
    it already existed and was modified after it. Without `since`, every
    row is reported as an INSERT (initial load).

    Returns:
        {"table", "events": [{"event", "table", "new"}], "cursor"}
        `cursor` is the latest created/updated timestamp among the events,
        or the incoming `since` when nothing changed.

    Raises:
        ValueError: If the table is not watched or `since` is malformed.
    """
    model = WATCHED_TABLES.get(table)
    if model is None:
        raise ValueError(
            f"Unknown table '{table}'. Must be one of: {', '.join(WATCHED_TABLES)}"
        )

    since_dt = parse_cursor(since)

    query = model.query
    if since_dt is not None:
        query = query.filter(
            db.or_(model.created_at > since_dt, model.updated_at > since_dt)
        )
    rows = query.order_by(model.updated_at.asc(), model.created_at.asc(), model.id.asc()).all()

    events = []
    latest = since_dt
    for row in rows:
        created = to_datetime(row.created_at)
        updated = to_datetime(row.updated_at)
        is_insert = since_dt is None or (created is not None and created > since_dt)
        events.append({
            "event": "INSERT" if is_insert else "UPDATE",
            "table": table,
            "new": row.to_dict(),
        })
        for stamp in (created, updated):
            if stamp is not None and (latest is None or stamp > latest):
                latest = stamp

    return {"table": table, "events": events, "cursor": format_cursor(latest)}
