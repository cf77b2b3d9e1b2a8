"""Admin corrections to another user's time entries.

These writes always carry the admin's id in ``updated_by``. They skip the
overlap veto applied to self-service edits, since resolving a dispute can
require an entry that overlaps a disputed automatic one; overlaps are still
logged as warnings.
"""
import logging
from typing import Any

from sqlmodel import Session

from models import TimeEntry
from validation import create_manual_entry, update_entry

logger = logging.getLogger(__name__)


def update_entry_as_admin(
    session: Session,
    entry_id: int,
    updates: dict[str, Any],
    admin_id: str,
    now: int | None = None,
) -> TimeEntry:
    entry = update_entry(
        session, entry_id, updates, check_overlap=False, updated_by=admin_id, now=now
    )
    logger.info(f"Admin {admin_id} corrected time entry {entry_id} of {entry.user_id}")
    return entry


def create_manual_entry_as_admin(
    session: Session,
    user_id: str,
    date: str,
    start_time: str,
    end_time: str,
    admin_id: str,
    notes: str | None = None,
    now: int | None = None,
) -> TimeEntry:
    entry = create_manual_entry(
        session,
        user_id,
        date,
        start_time,
        end_time,
        notes=notes,
        check_overlap=False,
        updated_by=admin_id,
        now=now,
    )
    logger.info(f"Admin {admin_id} added manual entry {entry.id} for {user_id}")
    return entry
