# roster_service.py

import logging
import re
from datetime import datetime
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from models import ASSIGNMENT_MODELS, PLANNED, ACTUAL, VALID_CODES, WORKING_CODES

log = logging.getLogger(__name__)

MONTH_RE = re.compile(r'\d{4}-\d{2}')
DATE_RE = re.compile(r'\d{4}-\d{2}-\d{2}')

class RosterError(Exception):
    """A request that cannot be served, with the HTTP status to report it as."""
    def __init__(self, message, status_code=400, details=None):
        super().__init__(message)
        self.message, self.status_code, self.details = message, status_code, details
    def to_dict(self):
        body = {"error": self.message}
        if self.details: body["details"] = self.details
        return body

# --- Parameter Parsing ---
def _parse(value, pattern, fmt, label, shape):
    if not value: raise RosterError(f"{label} query parameter is required")
    value = str(value).strip()
    try:
        if not pattern.fullmatch(value): raise ValueError(value)
        datetime.strptime(value, fmt)
    except ValueError:
        raise RosterError(f"Invalid {label.lower()} '{value}'", details=f"Expected {shape}")
    return value

def parse_month(value): return _parse(value, MONTH_RE, '%Y-%m', 'Month', 'YYYY-MM')
def parse_date(value): return _parse(value, DATE_RE, '%Y-%m-%d', 'Date', 'YYYY-MM-DD')

# --- Queries ---
def get_status_map(store, month):
    month = parse_month(month)
    planned, actual = set(store.distinct_dates(PLANNED, month)), set(store.distinct_dates(ACTUAL, month))
    return {day: {"planned": day in planned, "actual": day in actual} for day in sorted(planned | actual)}

def get_roster_for_date(store, date):
    date = parse_date(date)
    rows = store.roster_rows(date)
    for row in rows:
        for key in ('planned_shift', 'planned_ward', 'actual_shift', 'actual_ward'):
            if row[key] is None: row[key] = ''
    return rows

# --- Saving ---
def _clean_entry(store, variant, index, entry):
    def fail(reason):
        return RosterError(f"Failed to update {variant} roster", 400, details=f"Entry {index} (nurse {nurse_ref}): {reason}")
    nurse_ref = entry.get('nurseId') if isinstance(entry, dict) else None
    if not isinstance(entry, dict): raise fail("entry must be an object")
    if nurse_ref in (None, ''): raise fail("nurseId is required")
    try: nurse_id = int(nurse_ref)
    except (TypeError, ValueError): raise fail("nurseId must be an integer")
    if store.get_nurse(nurse_id) is None: raise fail("nurse does not exist")
    code = str(entry.get('shift') or '').strip().upper()
    if code and code not in VALID_CODES: raise fail(f"unknown shift code '{code}'")
    ward = str(entry.get('ward') or '').strip() if code in WORKING_CODES else ''
    return nurse_id, code, ward

def upsert_assignments(store, variant, date, entries):
    """Write one day's roster for every entry, all or nothing.

    Each entry is ``{"nurseId", "shift", "ward"}`` and replaces whatever the
    nurse had on ``date`` for that variant. The first bad entry aborts the
    whole batch and nothing is written.
    """
    if variant not in ASSIGNMENT_MODELS: raise RosterError(f"Unknown roster variant '{variant}'")
    date = parse_date(date)
    if not isinstance(entries, list): raise RosterError(f"Failed to update {variant} roster", details="roster must be a list")
    try:
        with store.transaction():
            for i, entry in enumerate(entries):
                nurse_id, code, ward = _clean_entry(store, variant, i, entry)
                store.upsert(variant, nurse_id, date, code, ward)
    except OperationalError:
        raise
    except SQLAlchemyError as e:
        raise RosterError(f"Failed to update {variant} roster", 500, details=str(e.orig if getattr(e, 'orig', None) else e)) from e
    log.info(f"Saved {variant} roster for {date} ({len(entries)} entries)")
    return len(entries)
