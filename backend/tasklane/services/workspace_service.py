"""
Workspaces and categories: owned containers with no scheduling behaviour.
"""
import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from tasklane import store
from tasklane.auth import CurrentUser, require_user
from tasklane.errors import StoreError, ValidationError
from tasklane.models import (
    Category, CategoryCreate, CategoryUpdate,
    RecurringTask, Task,
    Workspace, WorkspaceCreate, WorkspaceUpdate,
)
from tasklane.recurrence import as_validation_error

logger = logging.getLogger(__name__)


def _validated(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        raise as_validation_error(exc) from exc


def _write(session: Session, *operations) -> None:
    """Run store operations then commit, rolling back on the first failure."""
    try:
        for operation in operations:
            operation()
        store.commit(session)
    except StoreError:
        session.rollback()
        raise


def _non_null(values: dict, *names: str) -> None:
    for name in names:
        if name in values and values[name] is None:
            raise ValidationError(f"{name} cannot be null", field=name)


def check_references(
    session: Session,
    user: CurrentUser,
    workspace_id: Optional[int] = None,
    category_id: Optional[int] = None,
    parent_task_id: Optional[int] = None,
) -> None:
    """Raise ValidationError unless every given id is a row owned by `user`."""
    references = (
        ("workspace_id", Workspace, workspace_id),
        ("category_id", Category, category_id),
        ("parent_task_id", Task, parent_task_id),
    )
    for field, model, row_id in references:
        if row_id is None:
            continue
        if store.get_row(session, model, {"id": row_id, "user_id": user.id}) is None:
            raise ValidationError(f"{field}: not found", field=field)


# ============ Workspaces ============

def get_workspaces(session: Session, user: Optional[CurrentUser]) -> list[Workspace]:
    user = require_user(user)
    return store.select_rows(
        session, Workspace, {"user_id": user.id}, order_by=(Workspace.position, Workspace.id)
    )


def get_workspace(session: Session, user: Optional[CurrentUser], workspace_id: int) -> Workspace | None:
    user = require_user(user)
    return store.get_row(session, Workspace, {"id": workspace_id, "user_id": user.id})


def create_workspace(session: Session, user: Optional[CurrentUser], data) -> Workspace:
    user = require_user(user)
    data = _validated(WorkspaceCreate, data)
    workspace = Workspace(**data.model_dump(), user_id=user.id)
    _write(session, lambda: store.insert_row(session, workspace))
    session.refresh(workspace)
    return workspace


def update_workspace(
    session: Session, user: Optional[CurrentUser], workspace_id: int, updates
) -> Workspace | None:
    user = require_user(user)
    values = _validated(WorkspaceUpdate, updates).model_dump(exclude_unset=True)
    _non_null(values, "name", "color", "position")
    workspace = get_workspace(session, user, workspace_id)
    if workspace is None:
        return None
    owned = {"id": workspace_id, "user_id": user.id}
    _write(session, lambda: store.update_rows(session, Workspace, owned, values))
    session.refresh(workspace)
    return workspace


def delete_workspace(session: Session, user: Optional[CurrentUser], workspace_id: int) -> bool:
    """Delete a workspace with all of its tasks, recurring tasks and categories."""
    user = require_user(user)
    if get_workspace(session, user, workspace_id) is None:
        return False
    contents = {"workspace_id": workspace_id, "user_id": user.id}
    _write(
        session,
        lambda: store.delete_rows(session, Task, contents, Task.parent_task_id.is_not(None)),
        lambda: store.delete_rows(session, Task, contents),
        lambda: store.delete_rows(session, RecurringTask, contents),
        lambda: store.delete_rows(session, Category, contents),
        lambda: store.delete_rows(session, Workspace, {"id": workspace_id, "user_id": user.id}),
    )
    logger.info("Deleted workspace %s for user %s", workspace_id, user.id)
    return True


# ============ Categories ============

def get_categories(
    session: Session, user: Optional[CurrentUser], workspace_id: Optional[int] = None
) -> list[Category]:
    user = require_user(user)
    filters = {"user_id": user.id}
    if workspace_id is not None:
        filters["workspace_id"] = workspace_id
    return store.select_rows(session, Category, filters, order_by=(Category.position, Category.id))


def create_category(session: Session, user: Optional[CurrentUser], data) -> Category:
    user = require_user(user)
    data = _validated(CategoryCreate, data)
    check_references(session, user, workspace_id=data.workspace_id)
    category = Category(**data.model_dump(), user_id=user.id)
    _write(session, lambda: store.insert_row(session, category))
    session.refresh(category)
    return category


def update_category(
    session: Session, user: Optional[CurrentUser], category_id: int, updates
) -> Category | None:
    user = require_user(user)
    values = _validated(CategoryUpdate, updates).model_dump(exclude_unset=True)
    _non_null(values, "name", "position")
    owned = {"id": category_id, "user_id": user.id}
    category = store.get_row(session, Category, owned)
    if category is None:
        return None
    _write(session, lambda: store.update_rows(session, Category, owned, values))
    session.refresh(category)
    return category


def delete_category(session: Session, user: Optional[CurrentUser], category_id: int) -> bool:
    """Delete a category; tasks and recurring tasks in it become uncategorised."""
    user = require_user(user)
    owned = {"id": category_id, "user_id": user.id}
    if store.get_row(session, Category, owned) is None:
        return False
    members = {"category_id": category_id, "user_id": user.id}
    _write(
        session,
        lambda: store.update_rows(session, Task, members, {"category_id": None}),
        lambda: store.update_rows(session, RecurringTask, members, {"category_id": None}),
        lambda: store.delete_rows(session, Category, owned),
    )
    return True
