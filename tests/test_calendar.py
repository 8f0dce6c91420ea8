"""Tests for calendar helpers."""

from datetime import date, datetime

from kitchen_inventory.domain.calendar import (
    format_date_key,
    shift_week,
    week_days,
    week_start,
)


def test_format_date_key_pads_month_and_day() -> None:
    assert format_date_key(date(2026, 3, 7)) == "2026-03-07"
    assert format_date_key(datetime(2026, 12, 25, 23, 59)) == "2026-12-25"


def test_week_start_for_wednesday_is_two_days_earlier() -> None:
    assert week_start(date(2026, 10, 14)) == date(2026, 10, 12)


def test_week_start_for_sunday_is_six_days_earlier() -> None:
    assert week_start(date(2026, 10, 18)) == date(2026, 10, 12)


def test_week_start_for_monday_is_same_day() -> None:
    assert week_start(date(2026, 10, 12)) == date(2026, 10, 12)


def test_week_days_and_shift() -> None:
    start = date(2026, 10, 12)

    days = week_days(start)

    assert len(days) == 7
    assert days[-1] == date(2026, 10, 18)
    assert shift_week(start, 1) == date(2026, 10, 19)
    assert shift_week(start, -1) == date(2026, 10, 5)
