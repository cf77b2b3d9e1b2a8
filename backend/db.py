"""Database configuration for the time tracking store.

``DATABASE_URL`` selects the backend. Without it a local SQLite file at
``DATABASE_PATH`` is used, which is refused when ``ENV`` or ``RENDER`` marks a
production deployment. ``SQL_ECHO=1`` logs every statement.
"""
import logging
import os
from collections.abc import Mapping

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

logger = logging.getLogger(__name__)

PRODUCTION_ENVS = ("prod", "production")


def resolve_database_url(environ: Mapping[str, str] = os.environ) -> str:
    """Work out the SQLAlchemy URL for the current environment."""
    url = environ.get("DATABASE_URL")
    if not url:
        env = environ.get("ENV", environ.get("RENDER", "").lower() or "dev")
        if env in PRODUCTION_ENVS or environ.get("RENDER"):
            raise RuntimeError(
                "DATABASE_URL missing in production; time entries would land in a "
                "throwaway SQLite file. Set DATABASE_URL to the PostgreSQL database."
            )
        url = f"sqlite:///{environ.get('DATABASE_PATH', './timetracker.db')}"

    # Hosted PostgreSQL hands out postgres:// but SQLAlchemy expects postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def build_engine(url: str, echo: bool = False):
    """Create an engine tuned for the backend behind ``url``.

    SQLite connections are shared across FastAPI's worker threads, and an
    in-memory database must keep a single connection to survive between
    sessions. PostgreSQL connections are pinged before reuse.
    """
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
    else:
        options = {"pool_pre_ping": True}
    return create_engine(url, echo=echo, **options)


DATABASE_URL = resolve_database_url()
logger.info(f"DB_URL_DRIVER={DATABASE_URL.split(':', 1)[0]}")

engine = build_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "") == "1")


def create_db_and_tables(bind=None):
    """Create time_entries and time_sessions, including the one-active-session
    index. Existing tables are left untouched; the range-scan indexes come from
    migration 001."""
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Request-scoped session."""
    with Session(engine) as session:
        yield session
