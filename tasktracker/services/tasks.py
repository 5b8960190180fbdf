"""Task CRUD with owner isolation.

Ownership and existence are checked in one query, so another user's task
looks exactly like a missing one (NotFound). Status changes are not
restricted to Pending -> In-Progress -> Completed; any enum value may be
set directly. After every committed write the owner's live channels are
notified.
"""

import logging
from typing import Any, List

from sqlalchemy.orm import Session

from .. import store_db
from ..dates import normalize_due_date
from ..db_models import TaskDB, now_utc
from ..errors import NotFound
from ..live import LiveUpdateRegistry
from ..models import TaskFilters, TaskPayload, validate_payload

logger = logging.getLogger("tasktracker.tasks")


class TaskService:
    def __init__(self, db: Session, live: LiveUpdateRegistry):
        self.db = db
        self.live = live

    def list_tasks(self, owner_id: int, filters: TaskFilters) -> List[TaskDB]:
        return store_db.list_tasks(
            self.db,
            owner_id=owner_id,
            status=filters.status,
            priority=filters.priority,
            due_before=filters.due_before,
        )

    def create_task(self, owner_id: int, raw: Any) -> TaskDB:
        payload = validate_payload(TaskPayload, raw)
        row = store_db.create_task(
            self.db,
            owner_id=owner_id,
            title=payload.title,
            description=payload.description or "",
            status=payload.status,
            priority=payload.priority,
            due_date=normalize_due_date(payload.due_date, fallback=now_utc()),
        )
        logger.info("task created task_id=%s user_id=%s", row.id, owner_id)
        self._notify(owner_id)
        return row

    def update_task(self, owner_id: int, task_id: int, raw: Any) -> TaskDB:
        row = self._owned_or_404(owner_id, task_id)
        payload = validate_payload(TaskPayload, raw)
        row.title = payload.title
        row.description = payload.description or ""
        row.status = payload.status
        row.priority = payload.priority
        row.due_date = normalize_due_date(payload.due_date, fallback=row.due_date)
        row = store_db.save_task(self.db, row)
        logger.info("task updated task_id=%s user_id=%s", row.id, owner_id)
        self._notify(owner_id)
        return row

    def delete_task(self, owner_id: int, task_id: int) -> None:
        row = self._owned_or_404(owner_id, task_id)
        store_db.soft_delete_task(self.db, row)
        logger.info("task deleted task_id=%s user_id=%s", task_id, owner_id)
        self._notify(owner_id)

    def _owned_or_404(self, owner_id: int, task_id: int) -> TaskDB:
        row = store_db.get_task(self.db, task_id, owner_id=owner_id)
        if row is None:
            raise NotFound()
        return row

    def _notify(self, owner_id: int) -> None:
        # Best effort: the write is committed, the caller must still get its response.
        try:
            self.live.notify(owner_id)
        except Exception:
            logger.exception("live notify failed user_id=%s", owner_id)
