"""Calendar helpers for the weekly menu."""

from datetime import date, datetime, timedelta

DAYS_IN_WEEK = 7


def format_date_key(day: date | datetime) -> str:
    """Return the menu/cooked-log key for a local calendar day."""
    return f"{day.year}-{day.month:02d}-{day.day:02d}"


def week_start(today: date) -> date:
    """Return the Monday of the week containing ``today``."""
    # Sunday-first day index: Sunday is 0, Monday is 1.
    day_of_week = (today.weekday() + 1) % DAYS_IN_WEEK
    return today - timedelta(days=(day_of_week + 6) % DAYS_IN_WEEK)


def week_days(start: date) -> list[date]:
    """Return the seven days beginning at ``start``."""
    return [start + timedelta(days=offset) for offset in range(DAYS_IN_WEEK)]


def shift_week(start: date, direction: int) -> date:
    """Move a week start forward or backward by whole weeks."""
    return start + timedelta(days=DAYS_IN_WEEK * direction)
