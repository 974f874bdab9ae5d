import re
from sqlmodel import SQLModel, Field
from pydantic import field_validator
from datetime import datetime, date, timezone
from typing import Optional

from tasklane.recurrence import Recurrence, RecurrenceType, from_columns

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def check_color(value: Optional[str]) -> Optional[str]:
    if value is not None and not HEX_COLOR.match(value):
        raise ValueError("Invalid color format")
    return value


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============ Workspaces & Categories ============

class WorkspaceBase(SQLModel):
    name: str = Field(min_length=1)
    color: str = "#6366f1"
    icon: Optional[str] = None
    position: int = Field(default=0, ge=0)

    _color = field_validator("color")(check_color)


class Workspace(WorkspaceBase, table=True):
    __tablename__ = "workspaces"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class WorkspaceCreate(WorkspaceBase):
    pass


class WorkspaceRead(WorkspaceBase):
    id: int
    created_at: datetime
    updated_at: datetime


class WorkspaceUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = None
    icon: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)

    _color = field_validator("color")(check_color)


class CategoryBase(SQLModel):
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    name: str = Field(min_length=1)
    color: Optional[str] = None
    icon: Optional[str] = None
    position: int = Field(default=0, ge=0)

    _color = field_validator("color")(check_color)


class Category(CategoryBase, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow)


class CategoryCreate(CategoryBase):
    pass


class CategoryRead(CategoryBase):
    id: int
    created_at: datetime


class CategoryUpdate(SQLModel):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = None
    icon: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=0)

    _color = field_validator("color")(check_color)


# ============ Recurring task templates ============

class RecurringTaskBase(SQLModel):
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: int = Field(default=0, ge=0, le=3)
    start_date: date
    end_date: Optional[date] = None


class RecurringTask(RecurringTaskBase, table=True):
    """Template row. The recurrence is stored as flat nullable columns."""
    __tablename__ = "recurring_tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)

    recurrence_type: RecurrenceType
    interval_days: Optional[int] = None
    interval_weeks: Optional[int] = None
    interval_months: Optional[int] = None
    days_of_week: Optional[str] = None  # Comma-separated: "0,4" for Mon,Fri
    day_of_month: Optional[int] = None
    week_of_month: Optional[int] = None
    month_of_year: Optional[int] = None

    next_due_date: date
    is_active: bool = Field(default=True)
    is_paused: bool = Field(default=False)
    occurrences_generated: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def recurrence(self) -> Recurrence:
        return from_columns(self)


class RecurringTaskCreate(RecurringTaskBase):
    recurrence: Recurrence
    is_active: Optional[bool] = None


class RecurringTaskUpdate(SQLModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    priority: Optional[int] = Field(default=None, ge=0, le=3)
    recurrence: Optional[Recurrence] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    next_due_date: Optional[date] = None
    is_active: Optional[bool] = None
    is_paused: Optional[bool] = None


class RecurringTaskRead(RecurringTaskBase):
    id: int
    recurrence: Recurrence
    next_due_date: date
    is_active: bool
    is_paused: bool
    occurrences_generated: int
    created_at: datetime
    updated_at: datetime
    pattern: str
    date_range: str


# ============ Tasks ============

class TaskBase(SQLModel):
    workspace_id: int = Field(foreign_key="workspaces.id", index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="categories.id")
    parent_task_id: Optional[int] = Field(default=None, foreign_key="tasks.id")
    title: str = Field(min_length=1)
    description: Optional[str] = None
    scheduled_date: Optional[date] = Field(default=None, index=True)  # None = backlog
    due_date: Optional[date] = None
    priority: int = Field(default=0, ge=0, le=3)
    position: int = Field(default=0, ge=0)


class Task(TaskBase, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    recurring_task_id: Optional[int] = Field(
        default=None, foreign_key="recurring_tasks.id", index=True
    )
    is_completed: bool = Field(default=False)
    completed_at: Optional[datetime] = None
    is_detached: bool = Field(default=False)  # Edited apart from its template
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class TaskCreate(TaskBase):
    pass


class TaskRead(TaskBase):
    id: int
    recurring_task_id: Optional[int]
    is_completed: bool
    completed_at: Optional[datetime]
    is_detached: bool
    repeat_pattern: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TaskUpdate(SQLModel):
    workspace_id: Optional[int] = None
    category_id: Optional[int] = None
    parent_task_id: Optional[int] = None
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    scheduled_date: Optional[date] = None
    due_date: Optional[date] = None
    priority: Optional[int] = Field(default=None, ge=0, le=3)
    position: Optional[int] = Field(default=None, ge=0)
    is_completed: Optional[bool] = None
