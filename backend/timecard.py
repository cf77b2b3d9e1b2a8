"""Clock-in/clock-out sessions.

A user is either idle or has exactly one open ``TimeSession``. Stopping a
session closes it and materializes a ``TimeEntry``; closed sessions stay in
``time_sessions`` as the audit trail.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from durations import calculate_hours, local_date_for, now_ms
from errors import InvalidRangeError, NoActiveSessionError
from models import TimeEntry, TimeSession
from store import build_time_entry

logger = logging.getLogger(__name__)


def get_active_session(session: Session, user_id: str) -> TimeSession | None:
    stmt = (
        select(TimeSession)
        .where(TimeSession.user_id == user_id)
        .where(TimeSession.is_active == True)  # noqa: E712
        .order_by(TimeSession.start_time, TimeSession.id)
    )
    # More than one row means an earlier consistency break; the oldest wins.
    return session.exec(stmt).first()


def _mark_closed(active: TimeSession, now: int) -> TimeSession:
    active.is_active = False
    active.end_time = now
    active.total_hours = max(calculate_hours(active.start_time, now), 0.0)
    return active


def start_session(session: Session, user_id: str, now: int | None = None) -> TimeSession:
    """Open a new session, force-closing a forgotten one first.

    Closing the stale session and inserting the new one commit together. If
    either fails the user keeps the state they had and the error propagates.
    """
    now = now if now is not None else now_ms()

    stale = get_active_session(session, user_id)
    stale_id = stale.id if stale else None
    new_session = TimeSession(user_id=user_id, start_time=now, is_active=True)
    try:
        if stale:
            session.add(_mark_closed(stale, now))
            # The close must reach the database before the insert checks the
            # one-active-session index.
            session.flush()
        session.add(new_session)
        session.commit()
    except IntegrityError:
        session.rollback()
        winner = get_active_session(session, user_id)
        if winner is None or winner.id == stale_id:
            logger.error(f"Could not start session for {user_id}: session {stale_id} is still open")
            raise
        # Another start for this user committed first; keep that one.
        logger.warning(f"Concurrent start for {user_id}; returning session {winner.id}")
        return winner
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to start session for {user_id}: {str(e)}")
        raise

    if stale:
        logger.warning(
            f"Closed stale session {stale_id} for {user_id} ({stale.total_hours}h) before starting a new one"
        )
    session.refresh(new_session)
    logger.info(f"Started session {new_session.id} for {user_id}")
    return new_session


def stop_session(session: Session, user_id: str, now: int | None = None) -> TimeEntry:
    """Close the open session and record it as a time entry.

    Both rows are written in one transaction: a failure leaves the session
    open and no entry behind, so the stop can simply be retried.
    """
    now = now if now is not None else now_ms()

    active = get_active_session(session, user_id)
    if not active:
        raise NoActiveSessionError(user_id)
    if now <= active.start_time:
        raise InvalidRangeError(active.start_time, now)

    session_id = active.id
    try:
        entry = build_time_entry(
            {
                "user_id": user_id,
                "date": local_date_for(now),
                "clock_in": active.start_time,
                "clock_out": now,
                "is_manual": False,
            },
            now,
        )
        session.add(_mark_closed(active, now))
        session.add(entry)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to stop session {session_id} for {user_id}: {str(e)}")
        raise

    session.refresh(entry)
    logger.info(f"Stopped session {session_id} for {user_id}: {entry.total_hours}h as entry {entry.id}")
    return entry
