"""Timestamp defaults for rows the change feed and thread polls watch.

Stamped in Python with microseconds; CURRENT_TIMESTAMP on SQLite only
resolves to the second, which is too coarse for a `since` cursor.
"""

from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)
