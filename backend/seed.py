from datetime import date, timedelta

from sqlmodel import Session, select

from db import engine
from durations import combine_local, format_date
from models import TimeEntry
from timecard import start_session, stop_session
from validation import create_manual_entry


def seed_database():
    """Seed the database with a week of sample time data."""
    with Session(engine) as session:
        # Check if data already exists
        existing = session.exec(select(TimeEntry)).first()
        if existing:
            print("Database already has data, skipping seed.")
            return

        monday = date.today() - timedelta(days=date.today().weekday() + 7)
        count = 0
        for offset in range(5):
            day = format_date(monday + timedelta(days=offset))

            # Alice clocks in and out
            start_session(session, "alice", now=combine_local(day, "08:30"))
            stop_session(session, "alice", now=combine_local(day, "17:00"))

            # Bob splits his day around a lecture
            create_manual_entry(session, "bob", day, "09:00", "12:00", notes="Office hours")
            create_manual_entry(session, "bob", day, "14:00", "18:00")
            count += 3

        print(f"Seeded database with {count} sample entries.")


if __name__ == "__main__":
    from db import create_db_and_tables

    create_db_and_tables()
    seed_database()
