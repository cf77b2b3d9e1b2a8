import pytest

from durations import combine_local as at
from errors import EntryNotFoundError, InvalidRangeError, OverlapError
from store import get_time_entries_for_user, get_time_entry
from validation import create_manual_entry, intervals_overlap, update_time_entry


def test_manual_entry(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "09:00", "17:30", notes="conference")

    assert entry.is_manual is True
    assert entry.total_hours == 8.5
    assert entry.clock_in == at("2024-03-12", "09:00")
    assert entry.notes == "conference"


def test_manual_entry_without_notes_stores_none(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "09:00", "10:00")
    assert entry.notes is None


@pytest.mark.parametrize("day", ["2024-01-01", "2024-02-29", "2023-12-31", "2024-07-15"])
@pytest.mark.parametrize("start, end", [("10:00", "10:00"), ("17:00", "09:00"), ("00:01", "00:00")])
def test_manual_entry_rejects_non_positive_ranges(test_session, day, start, end):
    with pytest.raises(InvalidRangeError):
        create_manual_entry(test_session, "alice", day, start, end)
    assert get_time_entries_for_user(test_session, "alice") == []


def test_manual_entry_rejects_overlap(test_session):
    create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")

    with pytest.raises(OverlapError) as excinfo:
        create_manual_entry(test_session, "alice", "2024-03-12", "11:00", "13:00")
    assert excinfo.value.code == "TIME_ENTRY_OVERLAP"

    # Other users and other days are unaffected
    create_manual_entry(test_session, "bob", "2024-03-12", "11:00", "13:00")
    create_manual_entry(test_session, "alice", "2024-03-13", "11:00", "13:00")


def test_intervals_overlap():
    assert intervals_overlap(10, 12, 11, 13)
    assert intervals_overlap(10, 14, 11, 13)
    assert not intervals_overlap(10, 12, 12, 13)
    assert not intervals_overlap(12, 13, 10, 12)


@pytest.fixture
def two_entries(test_session):
    first = create_manual_entry(test_session, "alice", "2024-03-12", "10:00", "12:00")
    second = create_manual_entry(test_session, "alice", "2024-03-12", "14:00", "15:00")
    return first, second


def test_edit_into_overlap_is_rejected(test_session, two_entries):
    _, second = two_entries
    with pytest.raises(OverlapError) as excinfo:
        update_time_entry(
            test_session,
            second.id,
            {"clock_in": at("2024-03-12", "11:00"), "clock_out": at("2024-03-12", "13:00")},
        )
    assert excinfo.value.conflicting_ids == [two_entries[0].id]

    unchanged = get_time_entry(test_session, second.id)
    assert unchanged.clock_in == at("2024-03-12", "14:00")


def test_edit_adjoining_is_accepted(test_session, two_entries):
    _, second = two_entries
    updated = update_time_entry(
        test_session,
        second.id,
        {"clock_in": at("2024-03-12", "12:00"), "clock_out": at("2024-03-12", "13:00")},
    )
    assert updated.clock_in == at("2024-03-12", "12:00")
    assert updated.total_hours == 1.0


def test_edit_does_not_conflict_with_itself(test_session, two_entries):
    first, _ = two_entries
    updated = update_time_entry(test_session, first.id, {"clock_out": at("2024-03-12", "12:30")})
    assert updated.total_hours == 2.5


def test_edit_recomputes_total_hours_and_ignores_supplied_total(test_session, two_entries):
    first, _ = two_entries
    updated = update_time_entry(
        test_session, first.id, {"clock_in": at("2024-03-12", "09:00"), "total_hours": 42}
    )
    assert updated.total_hours == 3.0


def test_edit_rejects_inverted_range(test_session, two_entries):
    first, _ = two_entries
    with pytest.raises(InvalidRangeError):
        update_time_entry(test_session, first.id, {"clock_out": at("2024-03-12", "09:00")})
    assert get_time_entry(test_session, first.id).total_hours == 2.0


def test_edit_moving_to_another_day_checks_that_day(test_session, two_entries):
    first, _ = two_entries
    create_manual_entry(test_session, "alice", "2024-03-13", "10:30", "11:00")

    with pytest.raises(OverlapError):
        update_time_entry(
            test_session,
            first.id,
            {
                "date": "2024-03-13",
                "clock_in": at("2024-03-13", "10:00"),
                "clock_out": at("2024-03-13", "12:00"),
            },
        )


def test_edit_notes_only(test_session, two_entries):
    first, _ = two_entries
    updated = update_time_entry(test_session, first.id, {"notes": "", "clock_in": None})
    assert updated.notes == ""
    assert updated.clock_in == at("2024-03-12", "10:00")
    assert updated.updated_by is None


def test_explicit_null_clears_notes(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "09:00", "10:00", notes="typo")

    updated = update_time_entry(test_session, entry.id, {"notes": None})
    assert updated.notes is None
    test_session.expire_all()
    assert get_time_entry(test_session, entry.id).notes is None


def test_missing_notes_key_keeps_notes(test_session):
    entry = create_manual_entry(test_session, "alice", "2024-03-12", "09:00", "10:00", notes="keep me")

    updated = update_time_entry(test_session, entry.id, {"clock_out": at("2024-03-12", "11:00")})
    assert updated.notes == "keep me"
    assert updated.total_hours == 2.0


def test_edit_unknown_entry(test_session):
    with pytest.raises(EntryNotFoundError):
        update_time_entry(test_session, 12345, {"notes": "x"})
