import logging

import pytest

from admin import create_manual_entry_as_admin, update_entry_as_admin
from durations import combine_local as at
from errors import EntryNotFoundError, InvalidRangeError
from store import get_time_entry
from timecard import start_session, stop_session
from validation import create_manual_entry, update_time_entry


def test_notes_only_correction_stamps_admin(test_session):
    start_session(test_session, "alice", now=at("2024-03-12", "09:00"))
    entry = stop_session(test_session, "alice", now=at("2024-03-12", "17:30"))

    updated = update_entry_as_admin(
        test_session, entry.id, {"notes": "approved late clock-out"}, "admin-1",
        now=at("2024-03-13", "10:00"),
    )

    assert updated.updated_by == "admin-1"
    assert updated.notes == "approved late clock-out"
    assert updated.clock_in == at("2024-03-12", "09:00")
    assert updated.clock_out == at("2024-03-12", "17:30")
    assert updated.total_hours == 8.5
    assert updated.updated_at == at("2024-03-13", "10:00")


def test_admin_may_write_an_overlap(test_session, caplog):
    disputed = create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")
    other = create_manual_entry(test_session, "alice", "2024-03-12", "14:00", "15:00")

    with caplog.at_level(logging.WARNING, logger="validation"):
        updated = update_entry_as_admin(
            test_session,
            other.id,
            {"clock_in": at("2024-03-12", "11:00"), "clock_out": at("2024-03-12", "13:00")},
            "admin-1",
        )

    assert updated.total_hours == 2.0
    assert updated.updated_by == "admin-1"
    assert any(str(disputed.id) in record.getMessage() for record in caplog.records)


def test_admin_still_cannot_invert_a_range(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")
    with pytest.raises(InvalidRangeError):
        update_entry_as_admin(test_session, entry.id, {"clock_out": at("2024-03-12", "09:00")}, "admin-1")


def test_admin_update_unknown_entry(test_session):
    with pytest.raises(EntryNotFoundError):
        update_entry_as_admin(test_session, 4242, {"notes": "x"}, "admin-1")


def test_self_service_edit_clears_admin_stamp(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")
    update_entry_as_admin(test_session, entry.id, {"notes": "fixed"}, "admin-1")

    update_time_entry(test_session, entry.id, {"notes": "fixed, thanks"})

    assert get_time_entry(test_session, entry.id).updated_by is None


def test_admin_manual_entry_for_staff(test_session):
    create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")

    entry = create_manual_entry_as_admin(
        test_session, "alice", "2024-03-12", "11:00", "12:30", "admin-1", notes="badge reader down"
    )

    assert entry.user_id == "alice"
    assert entry.is_manual is True
    assert entry.updated_by == "admin-1"
    assert entry.total_hours == 1.5
