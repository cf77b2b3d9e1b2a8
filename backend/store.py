"""Persistence for time entries.

Range reads pick a query plan before touching the table. When the compound
index behind an ordered scan is missing or still building, the read falls
back to an unordered fetch scoped by ``user_id`` (or the whole table for the
admin view) and filters/sorts in Python. Both plans return the same rows in
the same order.
"""
import enum
import logging
from typing import Any

from sqlalchemy import inspect, text
from sqlmodel import Session, select

from durations import calculate_hours, now_ms
from errors import EntryNotFoundError, InvalidRangeError
from models import TimeEntry

logger = logging.getLogger(__name__)

USER_DATE_INDEX = "ix_time_entries_user_date_clock_in"
DATE_USER_INDEX = "ix_time_entries_date_user_clock_in"

ENTRY_FIELDS = (
    "user_id",
    "date",
    "clock_in",
    "clock_out",
    "is_manual",
    "notes",
    "updated_by",
)


class QueryPlan(str, enum.Enum):
    INDEXED = "indexed"
    SCAN = "scan"


class IndexProbe:
    """Reports whether a named index on time_entries can serve queries.

    Only positive answers are cached: an index that is still building will
    be re-checked on the next read.
    """

    def __init__(self):
        self._ready: set[str] = set()

    def reset(self):
        self._ready.clear()

    def is_ready(self, session: Session, index_name: str) -> bool:
        if index_name in self._ready:
            return True
        try:
            conn = session.connection()
            if conn.dialect.name == "postgresql":
                # A failed statement aborts the whole PostgreSQL transaction,
                # so the catalog query runs under its own savepoint.
                with session.begin_nested():
                    result = session.connection().execute(
                        text("""
                            SELECT i.indisvalid AND i.indisready
                            FROM pg_index i
                            JOIN pg_class c ON c.oid = i.indexrelid
                            WHERE c.relname = :name
                        """),
                        {"name": index_name},
                    )
                    row = result.fetchone()
                ready = bool(row and row[0])
            else:
                names = {ix["name"] for ix in inspect(conn).get_indexes(TimeEntry.__tablename__)}
                ready = index_name in names
        except Exception as e:
            logger.warning(f"Could not check index {index_name}: {e}")
            ready = False

        if ready:
            self._ready.add(index_name)
        return ready


index_probe = IndexProbe()


def plan_for(session: Session, index_name: str) -> QueryPlan:
    if index_probe.is_ready(session, index_name):
        return QueryPlan.INDEXED
    logger.warning(f"Index {index_name} unavailable, using client-side scan")
    return QueryPlan.SCAN


def clean_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Drop keys whose value is absent (None). Falsy values such as 0,
    False or "" are real values and are kept."""
    return {key: value for key, value in data.items() if value is not None}


# Sort keys shared by the indexed and scan plans. ``id`` breaks ties so both
# plans agree on order for entries with identical timestamps.
def _user_order_key(entry: TimeEntry):
    return (entry.date, entry.clock_in, entry.id or 0)


def _date_order_key(entry: TimeEntry):
    return (entry.clock_in, entry.id or 0)


def _admin_order_key(entry: TimeEntry):
    return (entry.date, entry.user_id, entry.clock_in, entry.id or 0)


def _in_range(entry: TimeEntry, start_date: str | None, end_date: str | None) -> bool:
    if start_date and entry.date < start_date:
        return False
    if end_date and entry.date > end_date:
        return False
    return True


def build_time_entry(data: dict[str, Any], now: int) -> TimeEntry:
    """Validate and assemble a new entry without writing it.

    ``total_hours`` is always derived from the clock values; a value supplied
    by the caller is ignored.
    """
    payload = clean_payload({key: data.get(key) for key in ENTRY_FIELDS})
    clock_out = payload.get("clock_out")
    if clock_out is not None:
        if clock_out <= payload["clock_in"]:
            raise InvalidRangeError(payload["clock_in"], clock_out)
        payload["total_hours"] = calculate_hours(payload["clock_in"], clock_out)
    return TimeEntry(**payload, created_at=now, updated_at=now)


def create_time_entry(session: Session, data: dict[str, Any], now: int | None = None) -> TimeEntry:
    """Persist a new entry; ``id``, ``created_at`` and ``updated_at`` are
    assigned here."""
    entry = build_time_entry(data, now if now is not None else now_ms())
    try:
        session.add(entry)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Error creating time entry for {data.get('user_id')}: {str(e)}")
        raise
    session.refresh(entry)
    logger.info(f"Created time entry {entry.id} for {entry.user_id} on {entry.date}")
    return entry


def get_time_entry(session: Session, entry_id: int) -> TimeEntry | None:
    return session.get(TimeEntry, entry_id)


def require_time_entry(session: Session, entry_id: int) -> TimeEntry:
    entry = get_time_entry(session, entry_id)
    if entry is None:
        raise EntryNotFoundError(entry_id)
    return entry


def apply_update(session: Session, entry: TimeEntry, values: dict[str, Any]) -> TimeEntry:
    """Write already-validated values onto an entry and commit."""
    for key, value in values.items():
        setattr(entry, key, value)
    try:
        session.add(entry)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Error updating time entry {entry.id}: {str(e)}")
        raise
    session.refresh(entry)
    return entry


def delete_time_entry(session: Session, entry_id: int) -> None:
    entry = require_time_entry(session, entry_id)
    try:
        session.delete(entry)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Error deleting time entry {entry_id}: {str(e)}")
        raise
    logger.info(f"Deleted time entry {entry_id}")


def get_time_entries_for_user(
    session: Session,
    user_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
) -> list[TimeEntry]:
    """Entries for a user, newest day first and latest clock-in first within
    a day, optionally limited to an inclusive date range."""
    plan = plan_for(session, USER_DATE_INDEX)
    if plan is QueryPlan.INDEXED:
        stmt = select(TimeEntry).where(TimeEntry.user_id == user_id)
        if start_date:
            stmt = stmt.where(TimeEntry.date >= start_date)
        if end_date:
            stmt = stmt.where(TimeEntry.date <= end_date)
        stmt = stmt.order_by(
            TimeEntry.date.desc(), TimeEntry.clock_in.desc(), TimeEntry.id.desc()
        )
        return list(session.exec(stmt).all())

    entries = session.exec(select(TimeEntry).where(TimeEntry.user_id == user_id)).all()
    entries = [e for e in entries if _in_range(e, start_date, end_date)]
    return sorted(entries, key=_user_order_key, reverse=True)


def get_time_entries_for_date(session: Session, user_id: str, date: str) -> list[TimeEntry]:
    """Entries for a user on one day, earliest clock-in first."""
    plan = plan_for(session, USER_DATE_INDEX)
    if plan is QueryPlan.INDEXED:
        stmt = (
            select(TimeEntry)
            .where(TimeEntry.user_id == user_id)
            .where(TimeEntry.date == date)
            .order_by(TimeEntry.clock_in, TimeEntry.id)
        )
        return list(session.exec(stmt).all())

    entries = session.exec(select(TimeEntry).where(TimeEntry.user_id == user_id)).all()
    return sorted((e for e in entries if e.date == date), key=_date_order_key)


def get_all_time_entries_for_date_range(
    session: Session, start_date: str, end_date: str
) -> list[TimeEntry]:
    """Every user's entries in an inclusive date range, ordered by date,
    then user, then clock-in."""
    plan = plan_for(session, DATE_USER_INDEX)
    if plan is QueryPlan.INDEXED:
        stmt = (
            select(TimeEntry)
            .where(TimeEntry.date >= start_date)
            .where(TimeEntry.date <= end_date)
            .order_by(TimeEntry.date, TimeEntry.user_id, TimeEntry.clock_in, TimeEntry.id)
        )
        return list(session.exec(stmt).all())

    entries = session.exec(select(TimeEntry)).all()
    entries = [e for e in entries if _in_range(e, start_date, end_date)]
    return sorted(entries, key=_admin_order_key)
