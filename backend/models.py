from sqlalchemy import BigInteger, Index, text
from sqlmodel import Field, SQLModel


class TimeEntry(SQLModel, table=True):
    __tablename__ = "time_entries"

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    date: str = Field(index=True)  # YYYY-MM-DD, local wall-clock day
    clock_in: int = Field(sa_type=BigInteger)  # epoch ms
    clock_out: int | None = Field(default=None, sa_type=BigInteger)
    total_hours: float | None = Field(default=None)
    is_manual: bool = Field(default=False)
    notes: str | None = Field(default=None)
    created_at: int = Field(sa_type=BigInteger)
    updated_at: int = Field(sa_type=BigInteger)
    updated_by: str | None = Field(default=None)  # admin id on corrections only


class TimeSession(SQLModel, table=True):
    __tablename__ = "time_sessions"
    # At most one open session per user, enforced by the database
    __table_args__ = (
        Index(
            "uniq_time_sessions_active_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active = true"),
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    start_time: int = Field(sa_type=BigInteger)
    end_time: int | None = Field(default=None, sa_type=BigInteger)
    is_active: bool = Field(default=True, index=True)
    total_hours: float | None = Field(default=None)
