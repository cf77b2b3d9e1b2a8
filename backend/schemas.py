from datetime import datetime

from pydantic import BaseModel, field_validator
from sqlmodel import SQLModel


def _check_date(value: str) -> str:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
    return value


def _check_time(value: str) -> str:
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            datetime.strptime(value, fmt)
            return value
        except ValueError:
            continue
    raise ValueError("Time must be in HH:MM format")


class ManualEntryRequest(BaseModel):
    user_id: str
    date: str  # YYYY-MM-DD format
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)


class TimeEntryUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    date: str | None = None
    clock_in: int | None = None
    clock_out: int | None = None
    notes: str | None = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_date(v) if v is not None else v


class TimeEntryResponse(SQLModel):
    id: int
    user_id: str
    date: str
    clock_in: int
    clock_out: int | None = None
    total_hours: float | None = None
    is_manual: bool
    notes: str | None = None
    created_at: int
    updated_at: int
    updated_by: str | None = None


class TimeSessionResponse(SQLModel):
    id: int
    user_id: str
    start_time: int
    end_time: int | None = None
    is_active: bool
    total_hours: float | None = None


class TimeTrackingStats(BaseModel):
    today_hours: float
    week_hours: float
    month_hours: float
    average_daily_hours: float
    current_session: TimeSessionResponse | None = None


class DailyTotal(BaseModel):
    date: str
    total_hours: float
    sessions: int


class MonthlyReport(BaseModel):
    user_id: str
    user_name: str
    month: str
    year: int
    total_hours: float
    working_days: int
    average_daily_hours: float
    daily_totals: list[DailyTotal]
    daily_entries: list[TimeEntryResponse]
    generated_at: int
