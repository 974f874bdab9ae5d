"""
Recurring task templates and the task instances they own.

Create/update/delete keep a template and its uncompleted instances
consistent, each inside a single session transaction. Completed
instances are history and are never rewritten.
"""
import logging
from datetime import date
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from tasklane import store
from tasklane.auth import CurrentUser, require_user
from tasklane.errors import StoreError, ValidationError
from tasklane.models import RecurringTask, RecurringTaskCreate, RecurringTaskUpdate, Task
from tasklane.recurrence import (
    IntervalFromCompletion,
    as_validation_error,
    parse_recurrence,
    to_columns,
    validate_schedule,
)
from tasklane.scheduler import calculate_next_task_date
from tasklane.services import workspace_service

logger = logging.getLogger(__name__)

# Template fields copied onto uncompleted instances when they change
PROPAGATED_FIELDS = ("title", "description", "category_id", "priority")

# Template columns that may not be set to null by an update
REQUIRED_FIELDS = ("title", "priority", "start_date", "next_due_date", "is_active", "is_paused")


def _rollback(session: Session) -> None:
    """Roll back after a failed write; a failing rollback is logged, never raised."""
    try:
        session.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback after a failed write did not complete")


def _validated(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise as_validation_error(exc) from exc


def _owned(user: CurrentUser, template_id: int) -> dict:
    return {"id": template_id, "user_id": user.id}


def _instance_for(template: RecurringTask, scheduled_date: date) -> Task:
    return Task(
        user_id=template.user_id,
        workspace_id=template.workspace_id,
        category_id=template.category_id,
        recurring_task_id=template.id,
        title=template.title,
        description=template.description,
        priority=template.priority,
        scheduled_date=scheduled_date,
        is_completed=False,
        position=0,
        is_detached=False,
    )


# ============ Lifecycle ============

def create_recurring_task(
    session: Session, user: Optional[CurrentUser], data: RecurringTaskCreate | dict
) -> RecurringTask:
    """
    Create a template together with its first instance at start_date.

    All-or-nothing: if any write fails the transaction is rolled back, so
    no template is left behind without its instance. The StoreError of
    the failing write is what the caller sees.
    """
    user = require_user(user)
    data = _validated(RecurringTaskCreate, data)
    rule = parse_recurrence(data.recurrence)
    validate_schedule(data.start_date, data.end_date)
    workspace_service.check_references(
        session, user, workspace_id=data.workspace_id, category_id=data.category_id
    )

    template = RecurringTask(
        user_id=user.id,
        workspace_id=data.workspace_id,
        category_id=data.category_id,
        title=data.title,
        description=data.description,
        priority=data.priority,
        start_date=data.start_date,
        end_date=data.end_date,
        next_due_date=data.start_date,
        is_active=True if data.is_active is None else data.is_active,
        is_paused=False,
        occurrences_generated=0,
        **to_columns(rule),
    )

    try:
        store.insert_row(session, template)
        store.insert_row(session, _instance_for(template, data.start_date))
        store.update_rows(session, RecurringTask, _owned(user, template.id), {"occurrences_generated": 1})
        store.commit(session)
    except StoreError as exc:
        logger.warning("Creating recurring task %r failed: %s", data.title, exc.message)
        _rollback(session)
        raise

    session.refresh(template)
    logger.info("Created recurring task %s (%s) for user %s", template.id, rule.recurrence_type, user.id)
    return template


def get_recurring_tasks(
    session: Session, user: Optional[CurrentUser], active_only: bool = False
) -> list[RecurringTask]:
    user = require_user(user)
    filters = {"user_id": user.id}
    if active_only:
        filters.update(is_active=True, is_paused=False)
    return store.select_rows(
        session, RecurringTask, filters, order_by=(RecurringTask.created_at, RecurringTask.id)
    )


def get_recurring_task(
    session: Session, user: Optional[CurrentUser], template_id: int
) -> RecurringTask | None:
    user = require_user(user)
    return store.get_row(session, RecurringTask, _owned(user, template_id))


def update_recurring_task(
    session: Session,
    user: Optional[CurrentUser],
    template_id: int,
    updates: RecurringTaskUpdate | dict,
) -> RecurringTask | None:
    """
    Update only the given template fields. Title, description, category
    and priority changes are copied to every uncompleted, non-detached
    instance of the template.
    """
    user = require_user(user)
    updates = _validated(RecurringTaskUpdate, updates)
    values = updates.model_dump(exclude_unset=True)

    for name in REQUIRED_FIELDS:
        if name in values and values[name] is None:
            raise ValidationError(f"{name} cannot be null", field=name)

    template = store.get_row(session, RecurringTask, _owned(user, template_id))
    if template is None:
        return None

    if "recurrence" in values:
        del values["recurrence"]
        if updates.recurrence is not None:
            values.update(to_columns(parse_recurrence(updates.recurrence)))
    validate_schedule(
        values.get("start_date", template.start_date),
        values.get("end_date", template.end_date),
    )

    workspace_service.check_references(session, user, category_id=values.get("category_id"))

    propagated = {name: values[name] for name in PROPAGATED_FIELDS if name in values}

    try:
        store.update_rows(session, RecurringTask, _owned(user, template_id), values)
        if propagated:
            store.update_rows(
                session,
                Task,
                {
                    "recurring_task_id": template_id,
                    "user_id": user.id,
                    "is_completed": False,
                    "is_detached": False,
                },
                propagated,
            )
        store.commit(session)
    except StoreError as exc:
        logger.warning("Updating recurring task %s failed: %s", template_id, exc.message)
        _rollback(session)
        raise

    session.refresh(template)
    logger.info("Updated recurring task %s (%s)", template_id, ", ".join(sorted(values)) or "no fields")
    return template


def delete_recurring_task(session: Session, user: Optional[CurrentUser], template_id: int) -> bool:
    """
    Delete a template and its uncompleted instances.

    Completed instances stay as history; their link to the template is
    cleared so the template row can go.
    """
    user = require_user(user)
    template = store.get_row(session, RecurringTask, _owned(user, template_id))
    if template is None:
        return False

    instances = {"recurring_task_id": template_id, "user_id": user.id}
    try:
        removed = store.delete_rows(session, Task, {**instances, "is_completed": False})
        store.update_rows(session, Task, instances, {"recurring_task_id": None})
        store.delete_rows(session, RecurringTask, _owned(user, template_id))
        store.commit(session)
    except StoreError as exc:
        logger.warning("Deleting recurring task %s failed: %s", template_id, exc.message)
        _rollback(session)
        raise

    logger.info("Deleted recurring task %s and %d uncompleted instances", template_id, removed)
    return True


# ============ State machine ============

def _set_state(
    session: Session, user: Optional[CurrentUser], template_id: int, **state: bool
) -> RecurringTask | None:
    user = require_user(user)
    template = store.get_row(session, RecurringTask, _owned(user, template_id))
    if template is None:
        return None
    try:
        store.update_rows(session, RecurringTask, _owned(user, template_id), state)
        store.commit(session)
    except StoreError:
        _rollback(session)
        raise
    session.refresh(template)
    return template


def pause_recurring_task(session, user, template_id):
    return _set_state(session, user, template_id, is_paused=True)


def resume_recurring_task(session, user, template_id):
    return _set_state(session, user, template_id, is_paused=False)


def deactivate_recurring_task(session, user, template_id):
    """Stop generating instances. Existing uncompleted instances are kept."""
    return _set_state(session, user, template_id, is_active=False)


def activate_recurring_task(session, user, template_id):
    return _set_state(session, user, template_id, is_active=True)


# ============ Occurrence generation ============

def generate_next_occurrence(session: Session, task: Task, completed_on: date) -> Task | None:
    """
    Create the instance that follows `task`, which was just completed.

    Nothing is generated for paused or inactive templates, past the
    template's end_date, or while another uncompleted instance exists.
    Does not commit; the caller owns the transaction.
    """
    if task.recurring_task_id is None:
        return None

    owned = {"id": task.recurring_task_id, "user_id": task.user_id}
    template = store.get_row(session, RecurringTask, owned)
    if template is None or not template.is_active or template.is_paused:
        return None

    rule = template.recurrence
    if isinstance(rule, IntervalFromCompletion):
        reference = completed_on
    else:
        reference = task.scheduled_date or template.next_due_date
    next_date = calculate_next_task_date(rule, reference)

    if template.end_date and next_date > template.end_date:
        logger.info("Recurring task %s ended on %s", template.id, template.end_date)
        return None

    pending = store.select_rows(
        session,
        Task,
        {
            "recurring_task_id": template.id,
            "user_id": task.user_id,
            "is_completed": False,
            "is_detached": False,
        },
        limit=1,
    )
    if pending:
        return None

    instance = store.insert_row(session, _instance_for(template, next_date))
    store.update_rows(
        session,
        RecurringTask,
        owned,
        {
            "next_due_date": next_date,
            "occurrences_generated": template.occurrences_generated + 1,
        },
    )
    logger.info("Generated occurrence of recurring task %s on %s", template.id, next_date)
    return instance
