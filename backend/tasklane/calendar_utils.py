"""
Calendar arithmetic on plain dates.

Weekday indices follow Python's date.weekday(): 0=Mon ... 6=Sun.
Everything works on `date` objects, so week counting is calendar-based.
"""
import calendar
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta


def add_days(day: date, n: int) -> date:
    return day + timedelta(days=n)


def add_weeks(day: date, n: int) -> date:
    return day + timedelta(weeks=n)


def add_months(day: date, n: int) -> date:
    """Month addition. Callers applying a fixed day-of-month clamp it themselves."""
    return day + relativedelta(months=n)


def add_years(day: date, n: int) -> date:
    return day + relativedelta(years=n)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Day 31 in February becomes 28 (or 29), never a rollover into March."""
    return min(day, days_in_month(year, month))


def weekday_index(day: date) -> int:
    return day.weekday()


def from_sunday_zero(weekday: int) -> int:
    """Convert a Sunday=0 weekday index to the Monday=0 convention."""
    return 6 if weekday == 0 else weekday - 1


def start_of_week(day: date, week_starts_on_monday: bool = True) -> date:
    if week_starts_on_monday:
        offset = day.weekday()
    else:
        offset = (day.weekday() + 1) % 7
    return day - timedelta(days=offset)


def weeks_between(start: date, end: date, week_starts_on_monday: bool = True) -> int:
    """Number of calendar weeks from the week containing `start` to the one containing `end`."""
    delta = start_of_week(end, week_starts_on_monday) - start_of_week(start, week_starts_on_monday)
    return delta.days // 7


def find_nth_weekday_of_month(
    year: int, month: int, weekday: int, nth: int
) -> Optional[date]:
    """
    Find the nth `weekday` (0=Mon) in the given month.

    nth is 1..5 for first..fifth, or -1 for last. When the forward nth
    doesn't exist (5th Monday in a four-Monday month) the last occurrence
    is returned. Returns None only if the weekday never occurs.
    """
    first = date(year, month, 1)
    last = last_day_of_month(year, month)

    if nth == -1:
        current = last
        while current >= first:
            if current.weekday() == weekday:
                return current
            current -= timedelta(days=1)
        return None

    count = 0
    current = first
    while current <= last:
        if current.weekday() == weekday:
            count += 1
            if count == nth:
                return current
        current += timedelta(days=1)

    return find_nth_weekday_of_month(year, month, weekday, -1)
