import json
from typing import Any

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from ..auth import get_current_user_id, get_token_issuer
from ..dates import parse_day
from ..db import get_db
from ..errors import ValidationFailed
from ..live import LiveUpdateRegistry
from ..models import TaskFilters
from ..security import Hasher, TokenIssuer
from ..services import AccountService, TaskService


def get_live_registry(conn: HTTPConnection) -> LiveUpdateRegistry:
    """The single registry built in the app lifespan."""
    return conn.app.state.live_registry


def get_hasher(conn: HTTPConnection) -> Hasher:
    return conn.app.state.hasher


def get_task_service(
    db: Session = Depends(get_db),
    live: LiveUpdateRegistry = Depends(get_live_registry),
) -> TaskService:
    return TaskService(db, live)


def get_account_service(
    db: Session = Depends(get_db),
    hasher: Hasher = Depends(get_hasher),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AccountService:
    return AccountService(db, hasher, issuer)


def parse_task_filters(
    status: str | None = Query(None),
    priority: str | None = Query(None),
    due_date: str | None = Query(None, description="Inclusive upper bound, YYYY-MM-DD"),
) -> TaskFilters:
    # Unknown status/priority values simply match nothing; an unparseable
    # due_date drops that filter instead of failing the request.
    return TaskFilters(
        status=status or None,
        priority=priority or None,
        due_before=parse_day(due_date),
    )


async def read_task_body(
    request: Request,
    _user_id: int = Depends(get_current_user_id),
) -> Any:
    """Decoded JSON body of a protected write; read only once the caller is authenticated."""
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationFailed(
            "Invalid request",
            errors=[{"field": "body", "message": "JSON decode error"}],
        ) from exc
