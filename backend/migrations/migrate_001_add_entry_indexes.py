"""
Migration: Add compound indexes for ordered time entry range scans.

This migration:
1. Creates ix_time_entries_user_date_clock_in on (user_id, date, clock_in)
   for per-user history and per-day reads
2. Creates ix_time_entries_date_user_clock_in on (date, user_id, clock_in)
   for the admin view across all users

On PostgreSQL the indexes are built CONCURRENTLY so the table stays writable;
until a build finishes, reads take the client-side scan path in store.py.
"""
import logging
from sqlalchemy import text

logger = logging.getLogger(__name__)

INDEXES = {
    "ix_time_entries_user_date_clock_in": "(user_id, date, clock_in)",
    "ix_time_entries_date_user_clock_in": "(date, user_id, clock_in)",
}


def is_postgres(engine):
    """Check if database is PostgreSQL."""
    return "postgresql" in str(engine.url).lower()


def migrate(engine):
    """Run migration."""
    if is_postgres(engine):
        # CREATE INDEX CONCURRENTLY cannot run inside a transaction block
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            try:
                migrate_postgres(conn)
                logger.info("Migration 001 completed successfully")
            except Exception as e:
                logger.error(f"Migration 001 failed: {str(e)}")
                raise
        return

    with engine.connect() as conn:
        trans = conn.begin()
        try:
            migrate_sqlite(conn)
            trans.commit()
            logger.info("Migration 001 completed successfully")
        except Exception as e:
            trans.rollback()
            logger.error(f"Migration 001 failed: {str(e)}")
            raise


def migrate_postgres(conn):
    """PostgreSQL migration."""
    logger.info("Running PostgreSQL migration...")

    for name, columns in INDEXES.items():
        # A previous interrupted concurrent build leaves an INVALID index behind
        result = conn.execute(text("""
            SELECT i.indisvalid
            FROM pg_index i
            JOIN pg_class c ON c.oid = i.indexrelid
            WHERE c.relname = :name
        """), {"name": name})
        row = result.fetchone()
        if row and row[0]:
            logger.info(f"{name} already exists, skipping")
            continue
        if row:
            logger.warning(f"{name} is invalid from an interrupted build, rebuilding")
            conn.execute(text(f"DROP INDEX CONCURRENTLY IF EXISTS {name}"))

        logger.info(f"Creating {name} on time_entries {columns}...")
        conn.execute(text(f"CREATE INDEX CONCURRENTLY IF NOT EXISTS {name} ON time_entries {columns}"))


def migrate_sqlite(conn):
    """SQLite migration."""
    logger.info("Running SQLite migration...")

    result = conn.execute(text("""
        SELECT name FROM sqlite_master
        WHERE type='table' AND name='time_entries'
    """))

    if not result.fetchone():
        logger.info("time_entries table does not exist, skipping migration")
        return

    for name, columns in INDEXES.items():
        logger.info(f"Creating {name} on time_entries {columns}...")
        conn.execute(text(f"CREATE INDEX IF NOT EXISTS {name} ON time_entries {columns}"))


if __name__ == "__main__":
    from db import engine
    logging.basicConfig(level=logging.INFO)
    migrate(engine)
