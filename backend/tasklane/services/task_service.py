import logging
from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from tasklane import store
from tasklane.auth import CurrentUser, require_user
from tasklane.calendar_utils import start_of_week
from tasklane.errors import StoreError, ValidationError
from tasklane.models import Task, TaskCreate, TaskUpdate, utcnow
from tasklane.recurrence import as_validation_error
from tasklane.services import recurring_service, workspace_service

logger = logging.getLogger(__name__)

# Editing any of these on a template instance detaches it from the template
DETACHING_FIELDS = ("title", "description", "category_id", "priority", "scheduled_date", "due_date")

TASK_ORDER = (Task.position, Task.priority.desc(), Task.created_at, Task.id)


def _check_dates(scheduled_date: Optional[date], due_date: Optional[date]) -> None:
    if scheduled_date and due_date and due_date < scheduled_date:
        raise ValidationError("due_date must be on or after scheduled_date", field="due_date")


def _owned(user: CurrentUser, task_id: int) -> dict:
    return {"id": task_id, "user_id": user.id}


def _commit(session: Session) -> None:
    try:
        store.commit(session)
    except StoreError:
        session.rollback()
        raise


# ============ Queries ============

def get_task(session: Session, user: Optional[CurrentUser], task_id: int) -> Task | None:
    user = require_user(user)
    return store.get_row(session, Task, _owned(user, task_id))


def get_tasks_for_date(
    session: Session,
    user: Optional[CurrentUser],
    target_date: date,
    workspace_id: Optional[int] = None,
    include_completed: bool = True,
) -> list[Task]:
    """Tasks scheduled on a specific date, in manual order."""
    user = require_user(user)
    filters = {"user_id": user.id, "scheduled_date": target_date}
    if workspace_id is not None:
        filters["workspace_id"] = workspace_id
    if not include_completed:
        filters["is_completed"] = False
    return store.select_rows(session, Task, filters, order_by=TASK_ORDER)


def get_tasks_for_week(
    session: Session,
    user: Optional[CurrentUser],
    day: date,
    workspace_id: Optional[int] = None,
) -> dict[date, list[Task]]:
    """Tasks for the Monday-start week containing `day`, grouped by date."""
    user = require_user(user)
    monday = start_of_week(day)
    sunday = monday + timedelta(days=6)
    filters = {"user_id": user.id}
    if workspace_id is not None:
        filters["workspace_id"] = workspace_id
    tasks = store.select_rows(
        session,
        Task,
        filters,
        Task.scheduled_date >= monday,
        Task.scheduled_date <= sunday,
        order_by=TASK_ORDER,
    )
    week = {monday + timedelta(days=i): [] for i in range(7)}
    for task in tasks:
        week[task.scheduled_date].append(task)
    return week


def get_backlog(
    session: Session, user: Optional[CurrentUser], workspace_id: Optional[int] = None
) -> list[Task]:
    """Uncompleted tasks with no scheduled date."""
    user = require_user(user)
    filters = {"user_id": user.id, "is_completed": False}
    if workspace_id is not None:
        filters["workspace_id"] = workspace_id
    return store.select_rows(
        session, Task, filters, Task.scheduled_date.is_(None), order_by=TASK_ORDER
    )


def search_tasks(
    session: Session, user: Optional[CurrentUser], query: str, limit: int = 50
) -> list[Task]:
    user = require_user(user)
    pattern = f"%{query.strip()}%"
    return store.select_rows(
        session,
        Task,
        {"user_id": user.id},
        Task.title.ilike(pattern),
        order_by=(Task.is_completed, Task.scheduled_date, Task.id),
        limit=limit,
    )


# ============ Commands ============

def create_task(session: Session, user: Optional[CurrentUser], data: TaskCreate | dict) -> Task:
    """Create a standalone task."""
    user = require_user(user)
    if not isinstance(data, TaskCreate):
        try:
            data = TaskCreate.model_validate(data)
        except PydanticValidationError as exc:
            raise as_validation_error(exc) from exc
    _check_dates(data.scheduled_date, data.due_date)
    workspace_service.check_references(
        session,
        user,
        workspace_id=data.workspace_id,
        category_id=data.category_id,
        parent_task_id=data.parent_task_id,
    )

    task = Task(**data.model_dump(), user_id=user.id)
    try:
        store.insert_row(session, task)
    except StoreError:
        session.rollback()
        raise
    _commit(session)
    session.refresh(task)
    return task


def _apply_completion(
    session: Session, user: CurrentUser, task: Task, completed: bool, completed_on: Optional[date]
) -> None:
    """Write the completion state without committing."""
    completed_at: Optional[datetime] = utcnow() if completed else None
    store.update_rows(
        session, Task, _owned(user, task.id),
        {"is_completed": completed, "completed_at": completed_at},
    )
    if completed:
        recurring_service.generate_next_occurrence(
            session, task, completed_on or completed_at.date()
        )


def set_task_completed(
    session: Session,
    user: Optional[CurrentUser],
    task_id: int,
    completed: bool,
    completed_on: Optional[date] = None,
) -> Task | None:
    """
    Mark a task completed or pending. Completing a template instance
    generates the template's next occurrence in the same transaction.

    `completed_on` is the completion date in the user's own calendar;
    it defaults to the UTC date of `completed_at`.
    """
    user = require_user(user)
    task = store.get_row(session, Task, _owned(user, task_id))
    if task is None:
        return None
    if task.is_completed == completed:
        return task

    try:
        _apply_completion(session, user, task, completed, completed_on)
        store.commit(session)
    except StoreError:
        session.rollback()
        raise

    session.refresh(task)
    return task


def complete_task(
    session: Session, user: Optional[CurrentUser], task_id: int, completed_on: Optional[date] = None
) -> Task | None:
    return set_task_completed(session, user, task_id, True, completed_on)


def uncomplete_task(session: Session, user: Optional[CurrentUser], task_id: int) -> Task | None:
    return set_task_completed(session, user, task_id, False)


def update_task(
    session: Session, user: Optional[CurrentUser], task_id: int, updates: TaskUpdate | dict
) -> Task | None:
    """Update a task's properties. Field edits and completion commit together."""
    user = require_user(user)
    if not isinstance(updates, TaskUpdate):
        try:
            updates = TaskUpdate.model_validate(updates)
        except PydanticValidationError as exc:
            raise as_validation_error(exc) from exc

    task = store.get_row(session, Task, _owned(user, task_id))
    if task is None:
        return None

    update_data = updates.model_dump(exclude_unset=True)
    completed = update_data.pop("is_completed", None)
    for name in ("title", "priority", "position", "workspace_id"):
        if name in update_data and update_data[name] is None:
            raise ValidationError(f"{name} cannot be null", field=name)
    _check_dates(
        update_data.get("scheduled_date", task.scheduled_date),
        update_data.get("due_date", task.due_date),
    )
    if update_data.get("parent_task_id") == task_id:
        raise ValidationError("a task cannot be its own parent", field="parent_task_id")
    workspace_service.check_references(
        session,
        user,
        workspace_id=update_data.get("workspace_id"),
        category_id=update_data.get("category_id"),
        parent_task_id=update_data.get("parent_task_id"),
    )

    if task.recurring_task_id is not None and any(
        name in update_data and update_data[name] != getattr(task, name)
        for name in DETACHING_FIELDS
    ):
        update_data["is_detached"] = True

    changes_completion = completed is not None and completed != task.is_completed
    if not update_data and not changes_completion:
        return task

    try:
        if update_data:
            store.update_rows(session, Task, _owned(user, task_id), update_data)
        if changes_completion:
            _apply_completion(session, user, task, completed, None)
        store.commit(session)
    except StoreError:
        session.rollback()
        raise

    session.refresh(task)
    return task


def delete_task(session: Session, user: Optional[CurrentUser], task_id: int) -> bool:
    """Delete a task and its subtasks."""
    user = require_user(user)
    task = store.get_row(session, Task, _owned(user, task_id))
    if task is None:
        return False
    try:
        store.delete_rows(session, Task, {"parent_task_id": task_id, "user_id": user.id})
        store.delete_rows(session, Task, _owned(user, task_id))
        store.commit(session)
    except StoreError:
        session.rollback()
        raise
    return True


def reorder_tasks(session: Session, user: Optional[CurrentUser], task_orders: list[dict]) -> None:
    """Update order of multiple tasks. Expects [{id: 1, position: 0}, ...]"""
    user = require_user(user)
    try:
        for item in task_orders:
            store.update_rows(session, Task, _owned(user, item["id"]), {"position": item["position"]})
        store.commit(session)
    except StoreError:
        session.rollback()
        raise
