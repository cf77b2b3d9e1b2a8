import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from admin import create_manual_entry_as_admin, update_entry_as_admin
from db import create_db_and_tables, engine, get_session
from errors import EntryNotFoundError, OverlapError, TimeTrackingError
from report import get_monthly_report
from schemas import (
    ManualEntryRequest,
    MonthlyReport,
    TimeEntryResponse,
    TimeEntryUpdate,
    TimeSessionResponse,
    TimeTrackingStats,
)
from stats import get_stats
from store import (
    delete_time_entry,
    get_all_time_entries_for_date_range,
    get_time_entries_for_date,
    get_time_entries_for_user,
    get_time_entry,
)
from timecard import get_active_session, start_session, stop_session
from validation import create_manual_entry, update_time_entry

# Configure logging
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def to_http_error(e: TimeTrackingError) -> HTTPException:
    """Map a domain error to the status code the UI expects."""
    if isinstance(e, EntryNotFoundError):
        status_code = 404
    elif isinstance(e, OverlapError):
        status_code = 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail={"code": e.code, "message": e.message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    create_db_and_tables()

    # Compound indexes may take a while on PostgreSQL; reads degrade until then
    try:
        from migrations.migrate_001_add_entry_indexes import migrate as migrate_001
        migrate_001(engine)
    except ImportError as e:
        logger.debug(f"Migration 001 module not found: {e}")
    except Exception as e:
        logger.warning(f"Migration 001 failed, range reads will use client-side scans: {str(e)}")

    logger.info("Database initialized")
    yield


# Create FastAPI app
app = FastAPI(title="Time Tracking API", version="1.0.0", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins in development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/sessions/{user_id}/start", response_model=TimeSessionResponse)
def start_time_session(user_id: str, session: Session = Depends(get_session)):
    """Clock in. A forgotten open session is closed first."""
    logger.info(f"Clock-in request for {user_id}")
    try:
        return start_session(session, user_id)
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error starting session for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/sessions/{user_id}/stop", response_model=TimeEntryResponse)
def stop_time_session(user_id: str, session: Session = Depends(get_session)):
    """Clock out and return the recorded time entry."""
    logger.info(f"Clock-out request for {user_id}")
    try:
        return stop_session(session, user_id)
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error stopping session for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/sessions/{user_id}/active", response_model=TimeSessionResponse | None)
def get_active_time_session(user_id: str, session: Session = Depends(get_session)):
    try:
        return get_active_session(session, user_id)
    except Exception as e:
        logger.error(f"Error fetching active session for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/entries/manual", response_model=TimeEntryResponse)
def create_manual_time_entry(request: ManualEntryRequest, session: Session = Depends(get_session)):
    """Add a time entry by hand for a day the user forgot to clock."""
    logger.info(f"Manual entry request for {request.user_id} on {request.date}")
    try:
        return create_manual_entry(
            session,
            request.user_id,
            request.date,
            request.start_time,
            request.end_time,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error creating manual entry: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/entries", response_model=list[TimeEntryResponse])
def get_entries(
    user_id: str = Query(..., description="Owner of the entries"),
    date_from: str = Query(None, description="Start date filter (YYYY-MM-DD)"),
    date_to: str = Query(None, description="End date filter (YYYY-MM-DD)"),
    session: Session = Depends(get_session),
):
    """Get a user's entries, newest first, with optional date filtering."""
    logger.info(f"Entries request for {user_id} - from: {date_from}, to: {date_to}")
    try:
        return get_time_entries_for_user(session, user_id, date_from, date_to)
    except Exception as e:
        logger.error(f"Error fetching entries for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/entries/by-date", response_model=list[TimeEntryResponse])
def get_entries_for_date(
    user_id: str = Query(..., description="Owner of the entries"),
    date: str = Query(..., description="Day in YYYY-MM-DD format"),
    session: Session = Depends(get_session),
):
    try:
        return get_time_entries_for_date(session, user_id, date)
    except Exception as e:
        logger.error(f"Error fetching entries for {user_id} on {date}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/entries/{entry_id}", response_model=TimeEntryResponse)
def get_entry(entry_id: int, session: Session = Depends(get_session)):
    try:
        entry = get_time_entry(session, entry_id)
    except Exception as e:
        logger.error(f"Error fetching entry {entry_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    if not entry:
        raise HTTPException(status_code=404, detail="Entry not found")
    return entry


@app.patch("/entries/{entry_id}", response_model=TimeEntryResponse)
def update_entry(entry_id: int, updates: TimeEntryUpdate, session: Session = Depends(get_session)):
    """Edit your own entry. Overlapping another entry on the same day is refused."""
    logger.info(f"Update entry request for ID: {entry_id}")
    try:
        return update_time_entry(session, entry_id, updates.model_dump(exclude_unset=True))
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error updating entry {entry_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.delete("/entries/{entry_id}")
def delete_entry(entry_id: int, session: Session = Depends(get_session)):
    """Delete a specific entry by ID."""
    logger.info(f"Delete entry request for ID: {entry_id}")
    try:
        delete_time_entry(session, entry_id)
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error deleting entry {entry_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"ok": True, "message": "Entry deleted successfully"}


@app.get("/stats/{user_id}", response_model=TimeTrackingStats)
def get_user_stats(user_id: str, session: Session = Depends(get_session)):
    try:
        return get_stats(session, user_id)
    except Exception as e:
        logger.error(f"Error computing stats for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/reports/monthly", response_model=MonthlyReport)
def get_monthly_time_report(
    user_id: str = Query(...),
    user_name: str = Query(..., description="Display name printed on the report"),
    month: str = Query(..., pattern=r"^(0?[1-9]|1[0-2])$", description="Month number, e.g. 03"),
    year: int = Query(..., ge=1970, le=9999),
    session: Session = Depends(get_session),
):
    """Monthly totals, per-day breakdown and raw entries for export."""
    logger.info(f"Monthly report request for {user_id}: {year}-{month}")
    try:
        return get_monthly_report(session, user_id, user_name, month, year)
    except Exception as e:
        logger.error(f"Error building monthly report for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/admin/entries", response_model=list[TimeEntryResponse])
def get_all_entries(
    date_from: str = Query(..., description="Start date (YYYY-MM-DD)"),
    date_to: str = Query(..., description="End date (YYYY-MM-DD)"),
    session: Session = Depends(get_session),
):
    """All users' entries for a date range."""
    logger.info(f"Admin entries request - from: {date_from}, to: {date_to}")
    try:
        return get_all_time_entries_for_date_range(session, date_from, date_to)
    except Exception as e:
        logger.error(f"Error fetching admin entries: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.patch("/admin/entries/{entry_id}", response_model=TimeEntryResponse)
def admin_update_entry(
    entry_id: int,
    updates: TimeEntryUpdate,
    admin_id: str = Query(..., description="Id of the admin making the correction"),
    session: Session = Depends(get_session),
):
    """Correct a staff member's entry. Overlaps are allowed and logged."""
    logger.info(f"Admin {admin_id} update request for entry ID: {entry_id}")
    try:
        return update_entry_as_admin(
            session, entry_id, updates.model_dump(exclude_unset=True), admin_id
        )
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error in admin update of entry {entry_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.post("/admin/entries/manual", response_model=TimeEntryResponse)
def admin_create_manual_entry(
    request: ManualEntryRequest,
    admin_id: str = Query(..., description="Id of the admin adding the entry"),
    session: Session = Depends(get_session),
):
    logger.info(f"Admin {admin_id} manual entry request for {request.user_id} on {request.date}")
    try:
        return create_manual_entry_as_admin(
            session,
            request.user_id,
            request.date,
            request.start_time,
            request.end_time,
            admin_id,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_error(e) from e
    except Exception as e:
        logger.error(f"Error in admin manual entry for {request.user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e)) from e


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Time Tracking API", "docs": "/docs"}
