from datetime import date, datetime

import pytest

from durations import calculate_hours, combine_local, format_date, format_time, local_date_for, month_bounds


def test_calculate_hours_rounds_to_two_decimals():
    assert calculate_hours(0, 3_600_000) == 1.0
    assert calculate_hours(0, 30_600_000) == 8.5
    # 20 minutes
    assert calculate_hours(0, 1_200_000) == 0.33
    # 40 minutes
    assert calculate_hours(0, 2_400_000) == 0.67


def test_format_date_uses_local_fields():
    assert format_date(date(2024, 3, 5)) == "2024-03-05"
    assert format_date(datetime(2024, 12, 31, 23, 59)) == "2024-12-31"


def test_combine_local_round_trips_through_local_date_and_time():
    instant = combine_local("2024-03-12", "23:45")
    assert local_date_for(instant) == "2024-03-12"
    assert format_time(instant) == "23:45"


def test_combine_local_accepts_seconds():
    assert combine_local("2024-03-12", "09:00:30") - combine_local("2024-03-12", "09:00") == 30_000


@pytest.mark.parametrize(
    "month, year, expected",
    [
        ("02", 2024, ("2024-02-01", "2024-02-29")),
        ("02", 2023, ("2023-02-01", "2023-02-28")),
        ("04", 2024, ("2024-04-01", "2024-04-30")),
        ("12", 2024, ("2024-12-01", "2024-12-31")),
        ("1", 2025, ("2025-01-01", "2025-01-31")),
    ],
)
def test_month_bounds(month, year, expected):
    assert month_bounds(month, year) == expected
