"""CRM list views — filtering, sorting, pagination and summaries.

Everything here works on plain record dicts (the output of the models'
to_dict()) so the same functions back the JSON API, the dashboard page,
the CSV export and the summary email. Nothing in this module touches the
database.
"""

import csv
import io
import json
import math
from collections import Counter
from datetime import date, datetime, time, timezone

APPLICATION_TYPES = ["buy", "sell", "work"]
APPLICATION_STATUSES = ["new", "in_review", "contacted", "approved", "rejected"]
LEAD_STATUSES = ["new", "contacted", "in progress", "closed"]

# Statuses that count as "closed" on the KPI cards.
CLOSED_STATUSES = {"approved", "rejected", "closed"}

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
    "in progress": "In Progress",
    "closed": "Closed",
}

TYPE_COLORS = {
    "buy": "#10b981",
    "sell": "#3b82f6",
    "work": "#8b5cf6",
}

STATUS_COLORS = {
    "new": "#10b981",
    "in_review": "#f59e0b",
    "contacted": "#3b82f6",
    "approved": "#8b5cf6",
    "rejected": "#ef4444",
}

CSV_HEADERS = [
    "Full Name",
    "Email",
    "Phone",
    "Location",
    "Application Type",
    "Status",
    "Submission Date",
    "Additional Data",
]

APPLICATION_SORT_FIELDS = [
    "full_name",
    "email_address",
    "created_at",
    "location",
    "status",
    "application_type",
]
LEAD_SORT_FIELDS = ["full_name", "email", "created_at", "location", "lead_status"]


# ──────────────────────────────────────────────
#  Helpers
# ──────────────────────────────────────────────

def to_datetime(value):
    """Coerce an ISO string / date / datetime to an aware UTC datetime.

    Naive values are assumed to be UTC (that's what the database stores).
    Returns None for empty input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def parse_date(value):
    """Parse a YYYY-MM-DD query-string value into a date, or None."""
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _is_all(value):
    return value in (None, "", "all")


def _matches_search(record, term, email_key):
    if not term:
        return True
    needle = term.lower()
    name = (record.get("full_name") or "").lower()
    email = (record.get(email_key) or "").lower()
    phone = record.get("phone_number") or ""
    # Phone numbers match as typed, name and email ignore case.
    return needle in name or needle in email or term in phone


# ──────────────────────────────────────────────
#  Filtering
# ──────────────────────────────────────────────

def filter_applications(records, search="", app_type="all", status="all",
                        date_from=None, date_to=None):
    """Filter unified application records.

    Args:
        records:   List of application dicts.
        search:    Substring of name / email (case-insensitive) or phone.
        app_type:  "buy" | "sell" | "work" | "all".
        status:    One of APPLICATION_STATUSES or "all".
        date_from: Inclusive lower bound (date); starts at 00:00:00 UTC.
        date_to:   Inclusive upper bound (date); runs through 23:59:59.999999.

    Returns:
        A new list with the matching records, in input order.
    """
    start = to_datetime(parse_date(date_from)) if date_from else None
    end = None
    if date_to:
        end = datetime.combine(parse_date(date_to), time.max, tzinfo=timezone.utc)

    result = []
    for record in records:
        if not _matches_search(record, search, "email_address"):
            continue
        if not _is_all(app_type) and record.get("application_type") != app_type:
            continue
        if not _is_all(status) and record.get("status") != status:
            continue
        if start or end:
            created = to_datetime(record.get("created_at"))
            if created is None:
                continue
            if start and created < start:
                continue
            if end and created > end:
                continue
        result.append(record)
    return result


def filter_leads(records, search="", lead_type="all", status="all"):
    """Filter unified legacy lead records (see unify_legacy_leads)."""
    return [
        r for r in records
        if _matches_search(r, search, "email")
        and (_is_all(lead_type) or r.get("type") == lead_type)
        and (_is_all(status) or r.get("lead_status") == status)
    ]


# ──────────────────────────────────────────────
#  Sorting
# ──────────────────────────────────────────────

def sort_records(records, field="created_at", order="desc", fields=None):
    """Sort records by a column.

    When `fields` is given, a `field` outside it falls back to `created_at`.

    Text columns compare case-folded (ties broken by the raw value), with a
    missing value sorting as the empty string. `created_at` (and any field
    ending in `_at`) compares by timestamp.
    """
    if fields is not None and field not in fields:
        field = "created_at"
    reverse = order == "desc"

    if field.endswith("_at"):
        epoch = datetime.min.replace(tzinfo=timezone.utc)

        def key(record):
            return to_datetime(record.get(field)) or epoch
    else:
        def key(record):
            value = str(record.get(field) or "")
            return (value.casefold(), value)

    return sorted(records, key=key, reverse=reverse)


def toggle_sort(current_field, current_order, field):
    """Column-header click: flip order on the active column, else start asc."""
    if field == current_field:
        return field, "asc" if current_order == "desc" else "desc"
    return field, "asc"


# ──────────────────────────────────────────────
#  Pagination & grouping
# ──────────────────────────────────────────────

class Page:
    """One page of a record list."""

    def __init__(self, items, page, page_size, total):
        self.items = items
        self.page = page
        self.page_size = page_size
        self.total = total

    @property
    def total_pages(self):
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def has_prev(self):
        return self.page > 1

    @property
    def has_next(self):
        return self.page < self.total_pages

    def to_dict(self):
        return {
            "items": self.items,
            "page": self.page,
            "page_size": self.page_size,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def paginate(records, page=1, page_size=15):
    """Slice `records` to the 1-based `page`. Out-of-range pages are empty."""
    page = max(int(page or 1), 1)
    start = (page - 1) * page_size
    return Page(records[start:start + page_size], page, page_size, len(records))


def group_records(records, field):
    """Group records by `field`, keeping first-seen group order."""
    groups = {}
    for record in records:
        groups.setdefault(record.get(field), []).append(record)
    return groups


# ──────────────────────────────────────────────
#  Export
# ──────────────────────────────────────────────

def _short_date(value):
    dt = to_datetime(value)
    if dt is None:
        return ""
    return f"{dt.month}/{dt.day}/{dt.year}"


def export_applications_csv(records):
    """Render application records as CSV text.

    One header row plus one row per record. Every cell is quoted and
    embedded quotes are doubled; rows are separated by a bare newline.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for r in records:
        writer.writerow([
            r.get("full_name") or "",
            r.get("email_address") or "",
            r.get("phone_number") or "",
            r.get("location") or "",
            TYPE_LABELS.get(r.get("application_type"), r.get("application_type") or ""),
            STATUS_LABELS.get(r.get("status"), r.get("status") or ""),
            _short_date(r.get("created_at")),
            json.dumps(r.get("additional_data") or {}, separators=(",", ":")),
        ])
    # Drop the trailing newline so the output is exactly header + rows.
    return buf.getvalue().rstrip("\n")


def export_filename(today=None):
    today = today or date.today()
    return f"applications_export_{today.isoformat()}.csv"


# ──────────────────────────────────────────────
#  Summaries
# ──────────────────────────────────────────────

def pivot_counts(records):
    """Type x status count matrix.

    Returns a dict with `matrix[type][status]`, `type_totals`,
    `status_totals` and `grand_total`. Records with an unknown type or
    status are left out of the matrix but still count in the grand total.
    """
    matrix = {t: {s: 0 for s in APPLICATION_STATUSES} for t in APPLICATION_TYPES}
    type_totals = {t: 0 for t in APPLICATION_TYPES}
    status_totals = {s: 0 for s in APPLICATION_STATUSES}

    for r in records:
        app_type = r.get("application_type")
        status = r.get("status")
        if app_type in matrix and status in matrix[app_type]:
            matrix[app_type][status] += 1
            type_totals[app_type] += 1
            status_totals[status] += 1

    return {
        "types": APPLICATION_TYPES,
        "statuses": APPLICATION_STATUSES,
        "matrix": matrix,
        "type_totals": type_totals,
        "status_totals": status_totals,
        "grand_total": len(records),
    }


def kpi_counts(records, type_key="application_type", status_key="status"):
    """KPI card values: total, new, contacted, closed, and per-type counts."""
    statuses = Counter(r.get(status_key) for r in records)
    types = Counter(r.get(type_key) for r in records)
    return {
        "total_leads": len(records),
        "new_leads": statuses["new"],
        "contacted_leads": statuses["contacted"],
        "closed_leads": sum(statuses[s] for s in CLOSED_STATUSES),
        "buy_leads": types["buy"],
        "sell_leads": types["sell"],
        "work_leads": types["work"],
    }


def chart_data(records, top_locations=5, max_days=30):
    """Series for the dashboard charts."""
    types = Counter(r.get("application_type") for r in records)
    statuses = Counter(r.get("status") for r in records)

    locations = Counter(
        (r.get("location") or "").strip() or "Unknown" for r in records
    )

    days = Counter()
    for r in records:
        created = to_datetime(r.get("created_at"))
        if created is not None:
            days[created.date().isoformat()] += 1

    return {
        "leads_by_type": [
            {"name": TYPE_LABELS[t], "value": types[t], "color": TYPE_COLORS[t]}
            for t in APPLICATION_TYPES
            if types[t]
        ],
        "leads_by_status": [
            {"name": STATUS_LABELS[s], "value": statuses[s], "color": STATUS_COLORS[s]}
            for s in APPLICATION_STATUSES
            if statuses[s]
        ],
        "leads_by_location": [
            {"name": name, "count": count}
            for name, count in locations.most_common(top_locations)
        ],
        "leads_by_date": [
            {"date": day, "count": days[day]}
            for day in sorted(days)[-max_days:]
        ],
    }


# ──────────────────────────────────────────────
#  Legacy lead table
# ──────────────────────────────────────────────

def unify_legacy_leads(buys, sells, works):
    """Project buy / sell / work request dicts into one lead shape.

    Returned rows carry: id, type, full_name, email, phone_number,
    location, age, details, created_at, lead_status, user_id.
    """
    leads = []
    for r in buys:
        leads.append({
            "id": r["id"],
            "type": "buy",
            "full_name": r.get("full_name") or "",
            "email": r.get("email") or "",
            "phone_number": r.get("phone_number") or "",
            "location": r.get("preferred_area") or "",
            "age": None,
            "details": f"Budget: {r.get('buying_budget') or 'N/A'}",
            "created_at": r.get("created_at"),
            "lead_status": r.get("lead_status") or "new",
            "user_id": r.get("user_id"),
        })
    for r in sells:
        leads.append({
            "id": r["id"],
            "type": "sell",
            "full_name": r.get("full_name") or "",
            "email": r.get("email") or "",
            "phone_number": r.get("phone_number") or "",
            "location": r.get("home_address") or "",
            "age": None,
            "details": f"Home address: {r.get('home_address') or 'N/A'}",
            "created_at": r.get("created_at"),
            "lead_status": r.get("lead_status") or "new",
            "user_id": r.get("user_id"),
        })
    for r in works:
        leads.append({
            "id": r["id"],
            "type": "work",
            "full_name": r.get("full_name") or "",
            "email": r.get("email") or "",
            "phone_number": "",
            "location": r.get("location") or "",
            "age": r.get("age"),
            "details": f"{r.get('skill') or 'N/A'} ({r.get('skill_level') or 'N/A'})",
            "created_at": r.get("created_at"),
            "lead_status": r.get("lead_status") or "new",
            "user_id": r.get("user_id"),
        })
    return leads
