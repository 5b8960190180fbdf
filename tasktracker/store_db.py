# PURPOSE: persistence for users (credential store) and tasks (task store).
# Every task query is scoped by owner and skips soft-deleted rows.
# SQLAlchemy failures are rolled back and surfaced as StorageError.

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import TaskDB, UserDB, now_utc
from .errors import EmailTaken, StorageError

logger = logging.getLogger("tasktracker.store")


@contextmanager
def _guard(db: Session, action: str) -> Iterator[None]:
    """Roll back and convert backend failures into StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage failure action=%s error=%s", action, exc.__class__.__name__)
        raise StorageError() from exc


# --- CRUD: Users -----------------------------------------------------------


def get_user_by_email(db: Session, email: str) -> Optional[UserDB]:
    """Exact (case-sensitive) email lookup."""
    with _guard(db, "get_user_by_email"):
        return db.query(UserDB).filter(UserDB.email == email).one_or_none()


def create_user(db: Session, *, email: str, password_hash: str, name: str) -> UserDB:
    """Insert a user; the unique index on email is the race-safe check."""
    now = now_utc()
    row = UserDB(
        email=email,
        password_hash=password_hash,
        name=name,
        created_at=now,
        updated_at=now,
    )
    try:
        db.add(row)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise EmailTaken() from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("storage failure action=create_user error=%s", exc.__class__.__name__)
        raise StorageError() from exc
    with _guard(db, "create_user"):
        db.refresh(row)
    return row


# --- CRUD: Tasks -----------------------------------------------------------


def _owned(db: Session, owner_id: int):
    return db.query(TaskDB).filter(TaskDB.user_id == owner_id, TaskDB.deleted_at.is_(None))


def list_tasks(
    db: Session,
    *,
    owner_id: int,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    due_before: Optional[datetime] = None,
) -> List[TaskDB]:
    """Return the owner's tasks; filters are exact matches, due_before is inclusive."""
    query = _owned(db, owner_id)
    if status:
        query = query.filter(TaskDB.status == status)
    if priority:
        query = query.filter(TaskDB.priority == priority)
    if due_before is not None:
        query = query.filter(TaskDB.due_date <= due_before)
    with _guard(db, "list_tasks"):
        return query.order_by(TaskDB.id.asc()).all()


def get_task(db: Session, task_id: int, *, owner_id: int) -> Optional[TaskDB]:
    """Fetch one live task; None when it is missing, deleted or owned by someone else."""
    with _guard(db, "get_task"):
        return _owned(db, owner_id).filter(TaskDB.id == task_id).one_or_none()


def create_task(
    db: Session,
    *,
    owner_id: int,
    title: str,
    description: str,
    status: str,
    priority: str,
    due_date: datetime,
) -> TaskDB:
    now = now_utc()
    row = TaskDB(
        user_id=owner_id,
        title=title,
        description=description,
        status=status,
        priority=priority,
        due_date=due_date,
        created_at=now,
        updated_at=now,
    )
    with _guard(db, "create_task"):
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def save_task(db: Session, row: TaskDB) -> TaskDB:
    """Persist changes made to a loaded row."""
    row.updated_at = now_utc()
    with _guard(db, "save_task"):
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def soft_delete_task(db: Session, row: TaskDB) -> None:
    now = now_utc()
    row.deleted_at = now
    row.updated_at = now
    with _guard(db, "delete_task"):
        db.add(row)
        db.commit()
