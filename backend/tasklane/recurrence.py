"""
Recurrence definitions.

Each recurrence kind is its own model carrying only the fields it needs;
`Recurrence` is the discriminated union over them. The `recurring_tasks`
table stores the same data as flat nullable columns; `to_columns()` and
`from_columns()` convert between the two shapes.
"""
from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from tasklane.errors import ValidationError


class RecurrenceType(str, Enum):
    INTERVAL_FROM_COMPLETION = "interval_from_completion"
    FIXED_DAILY = "fixed_daily"
    FIXED_WEEKLY = "fixed_weekly"
    FIXED_MONTHLY = "fixed_monthly"
    FIXED_YEARLY = "fixed_yearly"


Weekday = Annotated[int, Field(ge=0, le=6)]  # 0=Mon, 6=Sun


class _RecurrenceBase(BaseModel):
    model_config = ConfigDict(frozen=True)


class IntervalFromCompletion(_RecurrenceBase):
    """Next occurrence = completion date + interval_days."""
    recurrence_type: Literal["interval_from_completion"] = "interval_from_completion"
    interval_days: int = Field(ge=1)


class FixedDaily(_RecurrenceBase):
    """Next occurrence = previous occurrence + interval_days."""
    recurrence_type: Literal["fixed_daily"] = "fixed_daily"
    interval_days: int = Field(default=1, ge=1)


class FixedWeekly(_RecurrenceBase):
    recurrence_type: Literal["fixed_weekly"] = "fixed_weekly"
    interval_weeks: int = Field(default=1, ge=1)
    days_of_week: tuple[Weekday, ...] = Field(min_length=1)

    @field_validator("days_of_week")
    @classmethod
    def _sorted_unique(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        return tuple(sorted(set(value)))


class FixedMonthly(_RecurrenceBase):
    """
    Either a day of month (31 means "last day"), or the Nth/last
    occurrence of a single weekday.
    """
    recurrence_type: Literal["fixed_monthly"] = "fixed_monthly"
    interval_months: int = Field(default=1, ge=1)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    week_of_month: Optional[Literal[-1, 1, 2, 3, 4, 5]] = None
    days_of_week: Optional[tuple[Weekday]] = None

    @model_validator(mode="after")
    def _one_mode(self) -> "FixedMonthly":
        by_weekday = self.week_of_month is not None or self.days_of_week is not None
        if by_weekday and self.day_of_month is not None:
            raise ValueError("use either day_of_month or week_of_month with days_of_week, not both")
        if by_weekday and (self.week_of_month is None or not self.days_of_week):
            raise ValueError("week_of_month and days_of_week must be given together")
        if not by_weekday and self.day_of_month is None:
            raise ValueError("either day_of_month or week_of_month is required for monthly recurrence")
        return self

    @property
    def uses_weekday(self) -> bool:
        return self.week_of_month is not None


class FixedYearly(_RecurrenceBase):
    recurrence_type: Literal["fixed_yearly"] = "fixed_yearly"
    month_of_year: int = Field(ge=1, le=12)
    day_of_month: int = Field(ge=1, le=31)


Recurrence = Annotated[
    Union[IntervalFromCompletion, FixedDaily, FixedWeekly, FixedMonthly, FixedYearly],
    Field(discriminator="recurrence_type"),
]

_recurrence_adapter = TypeAdapter(Recurrence)

# Flat column names shared by the recurring_tasks table and API payloads
RECURRENCE_COLUMNS = (
    "recurrence_type",
    "interval_days",
    "interval_weeks",
    "interval_months",
    "days_of_week",
    "day_of_month",
    "week_of_month",
    "month_of_year",
)


def as_validation_error(exc: PydanticValidationError, skip: int = 0) -> ValidationError:
    """Convert the first pydantic error into a ValidationError naming its field."""
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"][skip:]) or None
    message = error["msg"].removeprefix("Value error, ")
    return ValidationError(f"{field}: {message}" if field else message, field=field)


def parse_recurrence(data: Any) -> Recurrence:
    """Validate a mapping into a recurrence variant, raising ValidationError."""
    if isinstance(data, _RecurrenceBase):
        return data
    try:
        return _recurrence_adapter.validate_python(data)
    except PydanticValidationError as exc:
        # loc starts with the union tag
        raise as_validation_error(exc, skip=1) from exc


def validate_schedule(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValidationError("end_date must be after start_date", field="end_date")


def parse_weekdays(value: Optional[str]) -> list[int]:
    """Parse the comma-separated weekday column, e.g. "0,2,4"."""
    if not value:
        return []
    return [int(d) for d in value.split(",") if d.strip()]


def format_weekdays(days: Optional[tuple[int, ...] | list[int]]) -> Optional[str]:
    if not days:
        return None
    return ",".join(str(d) for d in days)


def to_columns(rule: Recurrence) -> dict:
    """Flatten a recurrence variant into recurring_tasks column values."""
    columns = dict.fromkeys(RECURRENCE_COLUMNS)
    data = rule.model_dump()
    for key, value in data.items():
        columns[key] = value
    columns["recurrence_type"] = RecurrenceType(data["recurrence_type"])
    columns["days_of_week"] = format_weekdays(data.get("days_of_week"))
    return columns


def from_columns(row: Any) -> Recurrence:
    """Build a recurrence variant from a flat row (model or mapping)."""
    get = row.get if isinstance(row, dict) else lambda name: getattr(row, name, None)
    data = {}
    for name in RECURRENCE_COLUMNS:
        value = get(name)
        if name == "days_of_week" and isinstance(value, str):
            value = parse_weekdays(value)
        elif isinstance(value, Enum):
            value = value.value
        if value is not None:
            data[name] = value
    return parse_recurrence(data)


def default_recurrence(
    recurrence_type: RecurrenceType | str, today: Optional[date] = None
) -> Recurrence:
    """Starting configuration offered when a user picks a recurrence kind."""
    today = today or date.today()
    kind = RecurrenceType(recurrence_type)
    if kind == RecurrenceType.FIXED_DAILY:
        return FixedDaily(interval_days=1)
    if kind == RecurrenceType.FIXED_WEEKLY:
        return FixedWeekly(interval_weeks=1, days_of_week=(0,))
    if kind == RecurrenceType.FIXED_MONTHLY:
        return FixedMonthly(interval_months=1, day_of_month=1)
    if kind == RecurrenceType.FIXED_YEARLY:
        return FixedYearly(month_of_year=today.month, day_of_month=today.day)
    return IntervalFromCompletion(interval_days=2)
