"""Tests for the game calendar."""

from citysim.calendar import Calendar


def test_starts_on_day_one():
    cal = Calendar()
    assert (cal.day, cal.month, cal.year) == (1, 1, 1)
    assert cal.season == "spring"
    assert cal.total_months == 0


def test_advance_within_day():
    cal = Calendar(day_length=1000)
    change = cal.advance(400)
    assert not change.day_changed
    assert not change.month_changed
    assert cal.day_progress == 0.4


def test_advance_reports_days_crossed():
    cal = Calendar(day_length=1000)
    change = cal.advance(3500)
    assert change.days == 3
    assert cal.day == 4


def test_month_change():
    cal = Calendar(day_length=5000.0, days_per_month=30)
    change = cal.advance(5000.0 * 30)
    assert change.month_changed
    assert (cal.month, cal.day) == (2, 1)
    assert cal.total_months == 1


def test_year_change_and_season():
    cal = Calendar(day_length=1, days_per_month=1, months_per_year=12)
    cal.advance(6)
    assert cal.month == 7
    assert cal.season == "autumn"
    change = cal.advance(6)
    assert change.year_changed
    assert cal.year == 2
    assert cal.season == "spring"


def test_zero_and_negative_delta_are_noops():
    cal = Calendar()
    assert cal.advance(0) == (0, False, False)
    assert cal.advance(-10) == (0, False, False)
    assert cal.elapsed == 0


def test_as_dict():
    cal = Calendar(day_length=10)
    cal.advance(25)
    assert cal.as_dict() == {
        "day": 3,
        "month": 1,
        "year": 1,
        "season": "spring",
        "total_days": 2,
    }
