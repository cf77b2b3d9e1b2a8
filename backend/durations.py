"""Clock and calendar helpers shared by the time tracking engine.

Instants are epoch milliseconds. Calendar days are ``YYYY-MM-DD`` strings
computed from local wall-clock time, not UTC, so an entry recorded late in
the evening still lands on the day the user saw on their clock.
"""
import time
from datetime import date, datetime, timedelta

MS_PER_HOUR = 60 * 60 * 1000


def now_ms() -> int:
    """Current instant in epoch milliseconds."""
    return int(time.time() * 1000)


def format_date(value: date) -> str:
    """Format a date (or datetime) from its local calendar fields."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def local_datetime(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000)


def local_date_for(timestamp_ms: int) -> str:
    """Calendar day an instant falls on in local time."""
    return format_date(local_datetime(timestamp_ms))


def format_time(timestamp_ms: int) -> str:
    """Local clock time of an instant as ``HH:MM``."""
    return local_datetime(timestamp_ms).strftime("%H:%M")


def parse_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def combine_local(day: str, time_of_day: str) -> int:
    """Combine ``YYYY-MM-DD`` and ``HH:MM`` (or ``HH:MM:SS``) into an instant."""
    fmt = "%Y-%m-%d %H:%M:%S" if time_of_day.count(":") == 2 else "%Y-%m-%d %H:%M"
    return int(datetime.strptime(f"{day} {time_of_day}", fmt).timestamp() * 1000)


def calculate_hours(clock_in: int, clock_out: int) -> float:
    """Elapsed hours between two instants, rounded to 2 decimal places."""
    return round((clock_out - clock_in) / MS_PER_HOUR, 2)


def round_hours(value: float) -> float:
    return round(value, 2)


def month_bounds(month: str, year: int) -> tuple[str, str]:
    """First and last calendar day of a month.

    The last day is the day before the first of the following month, which
    handles 28/29/30/31 day months without a lookup table.
    """
    month_number = int(month)
    first = date(year, month_number, 1)
    if month_number == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month_number + 1, 1)
    last = next_first - timedelta(days=1)
    return format_date(first), format_date(last)
