"""
Human-readable descriptions of recurrence patterns and date ranges.

These helpers accept recurrence variants, recurring_tasks rows or plain
dicts, and fall back to a generic label rather than raising when a
definition is incomplete.
"""
from datetime import date, timedelta
from typing import Any, Optional

from tasklane import calendar_utils as cal
from tasklane.recurrence import parse_weekdays

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
ORDINAL_WORDS = {-1: "last", 1: "first", 2: "second", 3: "third", 4: "fourth", 5: "fifth"}


def ordinal_suffix(day: int) -> str:
    if 3 < day < 21:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def _field(rule: Any, name: str) -> Any:
    if isinstance(rule, dict):
        return rule.get(name)
    return getattr(rule, name, None)


def _weekdays(rule: Any) -> list[int]:
    value = _field(rule, "days_of_week")
    if isinstance(value, str):
        try:
            return parse_weekdays(value)
        except ValueError:
            return []
    return list(value or [])


def format_recurrence_pattern(rule: Any) -> str:
    """
    Describe a recurrence, e.g. "Every 2 weeks on Mon & Fri",
    "3rd of each month", "Last Friday of every 2 months".
    """
    recurrence_type = _field(rule, "recurrence_type")
    if hasattr(recurrence_type, "value"):
        recurrence_type = recurrence_type.value

    if recurrence_type == "interval_from_completion":
        days = _field(rule, "interval_days") or 1
        return f"{days} {'day' if days == 1 else 'days'} after completion"

    if recurrence_type == "fixed_daily":
        days = _field(rule, "interval_days") or 1
        return "Every day" if days == 1 else f"Every {days} days"

    if recurrence_type == "fixed_weekly":
        names = " & ".join(DAY_NAMES[d] for d in _weekdays(rule) if 0 <= d < 7)
        weeks = _field(rule, "interval_weeks") or 1
        if not names:
            return "Every week" if weeks == 1 else f"Every {weeks} weeks"
        if weeks == 1:
            return f"Every {names}"
        return f"Every {weeks} weeks on {names}"

    if recurrence_type == "fixed_monthly":
        months = _field(rule, "interval_months") or 1
        month_text = "each month" if months == 1 else f"every {months} months"
        week_of_month = _field(rule, "week_of_month")
        weekdays = _weekdays(rule)
        if week_of_month is not None and weekdays:
            ordinal = ORDINAL_WORDS.get(week_of_month, "")
            weekday = WEEKDAY_NAMES[weekdays[0]] if 0 <= weekdays[0] < 7 else ""
            return f"{ordinal.capitalize()} {weekday} of {month_text}".strip()
        day = _field(rule, "day_of_month") or 1
        if day == 31:
            return f"Last day of {month_text}"
        return f"{day}{ordinal_suffix(day)} of {month_text}"

    if recurrence_type == "fixed_yearly":
        month = _field(rule, "month_of_year")
        day = _field(rule, "day_of_month")
        if not month or not day or not 1 <= month <= 12:
            return "Yearly"
        return f"{MONTH_NAMES[month - 1]} {day}{ordinal_suffix(day)} every year"

    return "Custom"


def _as_date(value: date | str) -> date:
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def _short(day: date) -> str:
    return f"{day:%b} {day.day}"


def format_date_range(start_date: date | str, end_date: Optional[date | str] = None) -> str:
    """Describe a template's active period, e.g. "Jan 15 – Mar 30, 2024"."""
    start = _as_date(start_date)
    if not end_date:
        return f"Started {_short(start)}, {start.year}"
    end = _as_date(end_date)
    if start.year == end.year:
        return f"{_short(start)} – {_short(end)}, {end.year}"
    return f"{_short(start)}, {start.year} – {_short(end)}, {end.year}"


def format_week_label(day: date, today: Optional[date] = None) -> str:
    """
    Label for the Monday-start week containing `day`, e.g.
    "This Week (Jan 20-26)" or "Dec 30-Jan 5, 2024/2025".
    """
    today = today or date.today()
    week_start = cal.start_of_week(day)
    week_end = week_start + timedelta(days=6)

    if week_start.month == week_end.month:
        date_range = f"{week_start:%b} {week_start.day}-{week_end.day}"
    else:
        date_range = f"{_short(week_start)}-{_short(week_end)}"

    offset = cal.weeks_between(today, day)
    if offset == 0:
        return f"This Week ({date_range})"
    if offset == 1:
        return f"Next Week ({date_range})"
    if offset == -1:
        return f"Last Week ({date_range})"

    if week_start.year != week_end.year:
        return f"{date_range}, {week_start.year}/{week_end.year}"
    return f"{date_range}, {week_start.year}"
