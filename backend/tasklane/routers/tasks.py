"""
Task routes.
Daily, weekly and backlog views; create, edit, complete and delete tasks.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from datetime import date
from typing import Optional

from tasklane.auth import CurrentUser, get_current_user
from tasklane.database import get_session
from tasklane.formatting import format_recurrence_pattern, format_week_label
from tasklane.models import Task, TaskCreate, TaskRead, TaskUpdate
from tasklane.services import recurring_service, task_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def task_to_read(task: Task, session: Session, user: Optional[CurrentUser]) -> TaskRead:
    """Convert Task to TaskRead with repeat_pattern populated."""
    repeat_pattern = None
    if task.recurring_task_id:
        template = recurring_service.get_recurring_task(session, user, task.recurring_task_id)
        if template:
            repeat_pattern = format_recurrence_pattern(template)
    return TaskRead.model_validate(task, update={"repeat_pattern": repeat_pattern})


def _found(task: Optional[Task], session: Session, user: Optional[CurrentUser]) -> TaskRead:
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task_to_read(task, session, user)


@router.post("", response_model=TaskRead)
def create_task(
    data: TaskCreate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Create a standalone task."""
    return task_to_read(task_service.create_task(session, user, data), session, user)


@router.get("/today", response_model=list[TaskRead])
def get_todays_tasks(
    workspace_id: Optional[int] = None,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    tasks = task_service.get_tasks_for_date(session, user, date.today(), workspace_id)
    return [task_to_read(t, session, user) for t in tasks]


@router.get("/date/{target_date}", response_model=list[TaskRead])
def get_tasks_for_date(
    target_date: date,
    workspace_id: Optional[int] = None,
    include_completed: bool = True,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    tasks = task_service.get_tasks_for_date(
        session, user, target_date, workspace_id, include_completed=include_completed
    )
    return [task_to_read(t, session, user) for t in tasks]


@router.get("/week/{day}")
def get_week(
    day: date,
    workspace_id: Optional[int] = None,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Tasks for the Monday-start week containing `day`."""
    week = task_service.get_tasks_for_week(session, user, day, workspace_id)
    return {
        "label": format_week_label(day),
        "days": {
            str(d): [task_to_read(t, session, user) for t in tasks]
            for d, tasks in week.items()
        },
    }


@router.get("/backlog", response_model=list[TaskRead])
def get_backlog(
    workspace_id: Optional[int] = None,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    tasks = task_service.get_backlog(session, user, workspace_id)
    return [task_to_read(t, session, user) for t in tasks]


@router.get("/search", response_model=list[TaskRead])
def search_tasks(
    q: str,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    tasks = task_service.search_tasks(session, user, q)
    return [task_to_read(t, session, user) for t in tasks]


@router.post("/reorder")
def reorder_tasks(
    task_orders: list[dict],
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Update order of multiple tasks. Expects [{id: 1, position: 0}, ...]"""
    task_service.reorder_tasks(session, user, task_orders)
    return {"ok": True}


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(task_service.get_task(session, user, task_id), session, user)


@router.patch("/{task_id}", response_model=TaskRead)
def update_task(
    task_id: int,
    updates: TaskUpdate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Update a task's properties."""
    return _found(task_service.update_task(session, user, task_id, updates), session, user)


@router.post("/{task_id}/complete", response_model=TaskRead)
def complete_task(
    task_id: int,
    completed_on: Optional[date] = None,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Mark a task as completed, generating the next occurrence if recurring.

    `completed_on` is the completion date in the user's calendar (defaults to today in UTC).
    """
    return _found(task_service.complete_task(session, user, task_id, completed_on), session, user)


@router.post("/{task_id}/uncomplete", response_model=TaskRead)
def uncomplete_task(
    task_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Mark a task as pending (undo completion)."""
    return _found(task_service.uncomplete_task(session, user, task_id), session, user)


@router.delete("/{task_id}")
def delete_task(
    task_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    if not task_service.delete_task(session, user, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"ok": True}
