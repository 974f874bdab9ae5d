"""
Table operations over a SQLModel session.

Every function takes equality filters as a dict (plus optional extra
SQLAlchemy conditions for ranges and patterns) and turns SQLAlchemy
failures into StoreError with the driver's message intact. Nothing here
commits except `commit()`, so callers decide the transaction boundary.
"""
from typing import Any, Iterable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from tasklane.errors import StoreError
from tasklane.models import utcnow

ModelT = TypeVar("ModelT", bound=SQLModel)


def _message(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original) if original is not None else str(exc)


def _flush(session: Session) -> None:
    try:
        session.flush()
    except SQLAlchemyError as exc:
        raise StoreError(_message(exc)) from exc


def _statement(model: type[ModelT], filters: dict[str, Any], conditions: Iterable):
    statement = select(model)
    for name, value in filters.items():
        statement = statement.where(getattr(model, name) == value)
    for condition in conditions:
        statement = statement.where(condition)
    return statement


def insert_row(session: Session, row: ModelT) -> ModelT:
    session.add(row)
    _flush(session)
    session.refresh(row)
    return row


def select_rows(
    session: Session,
    model: type[ModelT],
    filters: dict[str, Any],
    *conditions,
    order_by: Iterable = (),
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[ModelT]:
    statement = _statement(model, filters, conditions)
    for column in order_by:
        statement = statement.order_by(column)
    if offset is not None:
        statement = statement.offset(offset)
    if limit is not None:
        statement = statement.limit(limit)
    try:
        return list(session.exec(statement).all())
    except SQLAlchemyError as exc:
        raise StoreError(_message(exc)) from exc


def get_row(session: Session, model: type[ModelT], filters: dict[str, Any]) -> Optional[ModelT]:
    rows = select_rows(session, model, filters, limit=1)
    return rows[0] if rows else None


def update_rows(
    session: Session, model: type[ModelT], filters: dict[str, Any], values: dict[str, Any], *conditions
) -> list[ModelT]:
    """Apply `values` to every matching row; returns the updated rows."""
    rows = select_rows(session, model, filters, *conditions)
    for row in rows:
        for key, value in values.items():
            setattr(row, key, value)
        if hasattr(row, "updated_at"):
            row.updated_at = utcnow()
        session.add(row)
    _flush(session)
    return rows


def delete_rows(session: Session, model: type[ModelT], filters: dict[str, Any], *conditions) -> int:
    rows = select_rows(session, model, filters, *conditions)
    for row in rows:
        session.delete(row)
    _flush(session)
    return len(rows)


def commit(session: Session) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        raise StoreError(_message(exc)) from exc
