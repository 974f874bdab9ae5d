"""
Next-occurrence calculation.

`calculate_next_task_date` is pure: no store access, no clock reads.
It never raises for a structurally valid recurrence; degenerate inputs
resolve to an explicit fallback instead.
"""
import logging
from datetime import date

from tasklane import calendar_utils as cal
from tasklane.recurrence import (
    FixedDaily,
    FixedMonthly,
    FixedWeekly,
    FixedYearly,
    IntervalFromCompletion,
    Recurrence,
)

logger = logging.getLogger(__name__)

# Upper bound on days scanned when looking for the next weekly match
WEEKLY_SCAN_LIMIT = 60


def calculate_next_task_date(rule: Recurrence, reference: date) -> date:
    """
    Return the next date on which an instance of `rule` should exist.

    For IntervalFromCompletion the caller passes the completion date as
    `reference`; for the fixed kinds it passes the previous occurrence.
    """
    if isinstance(rule, (IntervalFromCompletion, FixedDaily)):
        return cal.add_days(reference, rule.interval_days or 1)
    if isinstance(rule, FixedWeekly):
        return _next_weekly(reference, rule.days_of_week, rule.interval_weeks or 1)
    if isinstance(rule, FixedMonthly):
        return _next_monthly(reference, rule)
    if isinstance(rule, FixedYearly):
        return _next_yearly(reference, rule)
    return reference


def _next_weekly(reference: date, days_of_week, interval_weeks: int) -> date:
    wanted = set(days_of_week or ())
    base_week = cal.start_of_week(reference)
    candidate = cal.add_days(reference, 1)

    for _ in range(WEEKLY_SCAN_LIMIT):
        if cal.weekday_index(candidate) in wanted:
            if interval_weeks == 1:
                return candidate
            weeks_passed = cal.weeks_between(base_week, candidate)
            if weeks_passed % interval_weeks == 0:
                return candidate
        candidate = cal.add_days(candidate, 1)

    logger.warning(
        "No weekly match within %d days of %s (days=%s, every %d weeks)",
        WEEKLY_SCAN_LIMIT, reference, sorted(wanted), interval_weeks,
    )
    return cal.add_weeks(reference, interval_weeks)


def _next_monthly(reference: date, rule: FixedMonthly) -> date:
    target = cal.add_months(cal.start_of_month(reference), rule.interval_months or 1)

    if rule.uses_weekday and rule.days_of_week:
        found = cal.find_nth_weekday_of_month(
            target.year, target.month, rule.days_of_week[0], rule.week_of_month
        )
        return found or target

    if rule.day_of_month == 31:
        return cal.last_day_of_month(target.year, target.month)

    day = cal.clamp_day_to_month(target.year, target.month, rule.day_of_month or 1)
    return target.replace(day=day)


def _next_yearly(reference: date, rule: FixedYearly) -> date:
    next_year = cal.add_years(reference, 1)
    month = rule.month_of_year or next_year.month
    day = cal.clamp_day_to_month(next_year.year, month, rule.day_of_month or next_year.day)
    return date(next_year.year, month, day)
