"""Monthly time report assembly.

Builds the data behind the exported monthly time sheet. Nothing here is
stored: every call re-reads the month's entries.
"""
import logging
from collections import defaultdict

from sqlmodel import Session

from durations import month_bounds, now_ms, round_hours
from models import TimeEntry
from schemas import DailyTotal, MonthlyReport, TimeEntryResponse
from store import get_time_entries_for_user

logger = logging.getLogger(__name__)


def group_by_day(entries: list[TimeEntry]) -> dict[str, list[TimeEntry]]:
    by_day = defaultdict(list)
    for entry in entries:
        by_day[entry.date].append(entry)
    return dict(by_day)


def calculate_daily_totals(entries: list[TimeEntry]) -> list[DailyTotal]:
    """Hours and entry count per day, newest day first."""
    totals = [
        DailyTotal(
            date=day,
            total_hours=round_hours(sum(e.total_hours or 0 for e in day_entries)),
            sessions=len(day_entries),
        )
        for day, day_entries in group_by_day(entries).items()
    ]
    return sorted(totals, key=lambda t: t.date, reverse=True)


def get_monthly_report(
    session: Session,
    user_id: str,
    user_name: str,
    month: str,
    year: int,
    now: int | None = None,
) -> MonthlyReport:
    """
    Collect a user's entries for one calendar month.

    Args:
        session: Database session
        user_id: Owner of the entries
        user_name: Display name for the report header (resolved by the caller)
        month: Month number, "3" or "03"
        year: Four digit year
    """
    month = month.zfill(2)
    start_date, end_date = month_bounds(month, year)
    entries = get_time_entries_for_user(session, user_id, start_date, end_date)

    total_hours = round_hours(sum(entry.total_hours or 0 for entry in entries))
    daily_totals = calculate_daily_totals(entries)
    working_days = len(daily_totals)

    logger.info(
        f"Monthly report for {user_id} {year}-{month}: {len(entries)} entries, "
        f"{total_hours}h over {working_days} days"
    )
    return MonthlyReport(
        user_id=user_id,
        user_name=user_name,
        month=month,
        year=year,
        total_hours=total_hours,
        working_days=working_days,
        average_daily_hours=round_hours(total_hours / working_days) if working_days else 0.0,
        daily_totals=daily_totals,
        daily_entries=[TimeEntryResponse.model_validate(entry) for entry in entries],
        generated_at=now if now is not None else now_ms(),
    )
