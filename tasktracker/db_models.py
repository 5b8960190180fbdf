# PURPOSE: define how User and Task rows look in the database.

from datetime import UTC, datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .models import PRIORITY_VALUES, STATUS_VALUES


def now_utc() -> datetime:
    """Return naive UTC datetime; every timestamp column stores UTC."""
    return datetime.now(UTC).replace(tzinfo=None)


def _in_list(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class UserDB(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc)

    tasks = relationship("TaskDB", back_populates="owner")


class TaskDB(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        # enum membership is enforced by the store as well as by request validation
        CheckConstraint(_in_list("status", STATUS_VALUES), name="ck_tasks_status"),
        CheckConstraint(_in_list("priority", PRIORITY_VALUES), name="ck_tasks_priority"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)  # soft delete
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)

    owner = relationship("UserDB", back_populates="tasks")


# Helpful indexes for owner-scoped filtering
Index("ix_tasks_user_id", TaskDB.user_id)
Index("ix_tasks_status", TaskDB.status)
Index("ix_tasks_priority", TaskDB.priority)
Index("ix_tasks_due_date", TaskDB.due_date)
Index("ix_tasks_deleted_at", TaskDB.deleted_at)
