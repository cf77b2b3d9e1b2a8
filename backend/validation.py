"""Manual entries, edits and the overlap rule that guards them."""
import logging
from typing import Any

from sqlmodel import Session

from durations import calculate_hours, combine_local, now_ms
from errors import InvalidRangeError, OverlapError
from models import TimeEntry
from store import apply_update, clean_payload, create_time_entry, get_time_entries_for_date, require_time_entry

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("date", "clock_in", "clock_out", "notes")
# Fields an update may set back to NULL by passing None explicitly
CLEARABLE_FIELDS = ("notes",)


def ensure_valid_range(clock_in: int, clock_out: int) -> None:
    if clock_out <= clock_in:
        raise InvalidRangeError(clock_in, clock_out)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open intervals intersect; touching edges do not count."""
    return start_a < end_b and start_b < end_a


def find_overlaps(
    session: Session,
    user_id: str,
    date: str,
    clock_in: int,
    clock_out: int,
    ignore_entry_id: int | None = None,
) -> list[TimeEntry]:
    """Other closed entries of the user on that day intersecting the interval."""
    return [
        entry
        for entry in get_time_entries_for_date(session, user_id, date)
        if entry.id != ignore_entry_id
        and entry.clock_out is not None
        and intervals_overlap(entry.clock_in, entry.clock_out, clock_in, clock_out)
    ]


def ensure_no_overlap(
    session: Session,
    user_id: str,
    date: str,
    clock_in: int,
    clock_out: int,
    ignore_entry_id: int | None = None,
) -> None:
    conflicts = find_overlaps(session, user_id, date, clock_in, clock_out, ignore_entry_id)
    if conflicts:
        raise OverlapError(user_id, date, [entry.id for entry in conflicts])


def create_manual_entry(
    session: Session,
    user_id: str,
    date: str,
    start_time: str,
    end_time: str,
    notes: str | None = None,
    check_overlap: bool = True,
    updated_by: str | None = None,
    now: int | None = None,
) -> TimeEntry:
    """Record a work interval typed in by hand (``HH:MM`` times on ``date``)."""
    clock_in = combine_local(date, start_time)
    clock_out = combine_local(date, end_time)
    ensure_valid_range(clock_in, clock_out)

    if check_overlap:
        ensure_no_overlap(session, user_id, date, clock_in, clock_out)
    else:
        _log_admin_overlaps(session, user_id, date, clock_in, clock_out, None, updated_by)

    entry = create_time_entry(
        session,
        {
            "user_id": user_id,
            "date": date,
            "clock_in": clock_in,
            "clock_out": clock_out,
            "is_manual": True,
            "notes": notes,
            "updated_by": updated_by,
        },
        now=now,
    )
    logger.info(f"Manual entry {entry.id} for {user_id} on {date}: {entry.total_hours}h")
    return entry


def update_entry(
    session: Session,
    entry_id: int,
    updates: dict[str, Any],
    check_overlap: bool = True,
    updated_by: str | None = None,
    now: int | None = None,
) -> TimeEntry:
    """Apply a partial update, re-validating the interval it leaves behind.

    ``total_hours`` is always derived from the resulting clock values and
    never taken from ``updates``. ``updated_by`` is the admin stamp; a
    self-service edit clears it. A key that is missing leaves the field
    alone; ``None`` clears the fields in ``CLEARABLE_FIELDS`` and is ignored
    for the rest.
    """
    entry = require_time_entry(session, entry_id)
    changes = clean_payload({key: updates.get(key) for key in UPDATABLE_FIELDS})
    for key in CLEARABLE_FIELDS:
        if key in updates and updates[key] is None:
            changes[key] = None

    next_date = changes.get("date", entry.date)
    next_clock_in = changes.get("clock_in", entry.clock_in)
    next_clock_out = changes.get("clock_out", entry.clock_out)

    if next_clock_in is not None and next_clock_out is not None:
        ensure_valid_range(next_clock_in, next_clock_out)
        if check_overlap:
            ensure_no_overlap(
                session, entry.user_id, next_date, next_clock_in, next_clock_out, entry_id
            )
        else:
            _log_admin_overlaps(
                session, entry.user_id, next_date, next_clock_in, next_clock_out, entry_id, updated_by
            )
        changes["total_hours"] = calculate_hours(next_clock_in, next_clock_out)

    changes["updated_at"] = now if now is not None else now_ms()
    changes["updated_by"] = updated_by
    return apply_update(session, entry, changes)


def update_time_entry(
    session: Session, entry_id: int, updates: dict[str, Any], now: int | None = None
) -> TimeEntry:
    """Self-service edit: overlapping another entry of the same day is refused."""
    entry = update_entry(session, entry_id, updates, check_overlap=True, now=now)
    logger.info(f"Updated time entry {entry_id} for {entry.user_id}")
    return entry


def _log_admin_overlaps(session, user_id, date, clock_in, clock_out, entry_id, admin_id):
    conflicts = find_overlaps(session, user_id, date, clock_in, clock_out, entry_id)
    if conflicts:
        logger.warning(
            f"Admin {admin_id} wrote an interval for {user_id} on {date} overlapping "
            f"entries {[e.id for e in conflicts]}"
        )
