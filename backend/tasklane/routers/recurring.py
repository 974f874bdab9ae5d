"""
Recurring task routes.
Create, edit and delete templates together with their task instances.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from typing import Optional

from tasklane.auth import CurrentUser, get_current_user
from tasklane.database import get_session
from tasklane.formatting import format_date_range, format_recurrence_pattern
from tasklane.models import (
    RecurringTask, RecurringTaskCreate, RecurringTaskRead, RecurringTaskUpdate
)
from tasklane.services import recurring_service

router = APIRouter(prefix="/api/recurring", tags=["recurring"])


def recurring_to_read(template: RecurringTask) -> RecurringTaskRead:
    """Convert a template row to RecurringTaskRead with display text populated."""
    return RecurringTaskRead.model_validate(
        template,
        update={
            "recurrence": template.recurrence,
            "pattern": format_recurrence_pattern(template),
            "date_range": format_date_range(template.start_date, template.end_date),
        },
    )


def _found(template: Optional[RecurringTask]) -> RecurringTaskRead:
    if not template:
        raise HTTPException(status_code=404, detail="Recurring task not found")
    return recurring_to_read(template)


@router.get("", response_model=list[RecurringTaskRead])
def list_recurring_tasks(
    active_only: bool = False,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """List the user's recurring tasks."""
    templates = recurring_service.get_recurring_tasks(session, user, active_only=active_only)
    return [recurring_to_read(t) for t in templates]


@router.post("", response_model=RecurringTaskRead)
def create_recurring_task(
    data: RecurringTaskCreate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Create a recurring task and its first task instance."""
    return recurring_to_read(recurring_service.create_recurring_task(session, user, data))


@router.get("/{template_id}", response_model=RecurringTaskRead)
def get_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(recurring_service.get_recurring_task(session, user, template_id))


@router.patch("/{template_id}", response_model=RecurringTaskRead)
def update_recurring_task(
    template_id: int,
    updates: RecurringTaskUpdate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Update a recurring task and its uncompleted instances."""
    return _found(recurring_service.update_recurring_task(session, user, template_id, updates))


@router.delete("/{template_id}")
def delete_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Delete a recurring task and its uncompleted instances."""
    if not recurring_service.delete_recurring_task(session, user, template_id):
        raise HTTPException(status_code=404, detail="Recurring task not found")
    return {"ok": True}


@router.post("/{template_id}/pause", response_model=RecurringTaskRead)
def pause_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(recurring_service.pause_recurring_task(session, user, template_id))


@router.post("/{template_id}/resume", response_model=RecurringTaskRead)
def resume_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(recurring_service.resume_recurring_task(session, user, template_id))


@router.post("/{template_id}/deactivate", response_model=RecurringTaskRead)
def deactivate_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(recurring_service.deactivate_recurring_task(session, user, template_id))


@router.post("/{template_id}/activate", response_model=RecurringTaskRead)
def activate_recurring_task(
    template_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return _found(recurring_service.activate_recurring_task(session, user, template_id))
