"""Rolling totals for the time tracking dashboard."""
import logging
from datetime import timedelta

from sqlmodel import Session

from durations import format_date, local_datetime, now_ms, round_hours
from models import TimeEntry
from schemas import TimeSessionResponse, TimeTrackingStats
from store import get_time_entries_for_date, get_time_entries_for_user
from timecard import get_active_session

logger = logging.getLogger(__name__)


def sum_hours(entries: list[TimeEntry]) -> float:
    return round_hours(sum(entry.total_hours or 0 for entry in entries))


def get_stats(session: Session, user_id: str, now: int | None = None) -> TimeTrackingStats:
    """Today / last 7 days / month-to-date totals over closed entries.

    The open session, if any, is attached but not counted.
    """
    current = local_datetime(now if now is not None else now_ms())
    today = format_date(current)
    week_ago = format_date(current - timedelta(days=7))
    start_of_month = format_date(current.replace(day=1))

    today_entries = get_time_entries_for_date(session, user_id, today)
    week_entries = get_time_entries_for_user(session, user_id, week_ago, today)
    month_entries = get_time_entries_for_user(session, user_id, start_of_month, today)
    active = get_active_session(session, user_id)

    month_hours = sum_hours(month_entries)
    days_worked = len({entry.date for entry in month_entries})
    average = round_hours(month_hours / days_worked) if days_worked else 0.0

    logger.info(f"Stats for {user_id}: {len(month_entries)} entries this month")
    return TimeTrackingStats(
        today_hours=sum_hours(today_entries),
        week_hours=sum_hours(week_entries),
        month_hours=month_hours,
        average_daily_hours=average,
        current_session=TimeSessionResponse.model_validate(active) if active else None,
    )
