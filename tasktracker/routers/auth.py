# PURPOSE: POST /register, POST /login (public)

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request, Response

from ..api.deps import get_account_service
from ..config import settings
from ..models import AuthResponse, UserPublic
from ..rate_limit import limiter
from ..services import AccountService, AuthResult

router = APIRouter(tags=["auth"])


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, user=UserPublic.model_validate(result.user))


@router.post("/register", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_REGISTER)
def register(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(..., examples=[{"email": "ann@example.com", "password": "secret-123", "name": "Ann"}]),
    accounts: AccountService = Depends(get_account_service),
):
    return _auth_response(accounts.register(payload))


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    response: Response,
    payload: Dict[str, Any] = Body(..., examples=[{"email": "ann@example.com", "password": "secret-123"}]),
    accounts: AccountService = Depends(get_account_service),
):
    # Unknown email and wrong password both end up as the same 400
    return _auth_response(accounts.login(payload))
