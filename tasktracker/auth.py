# PURPOSE: auth gateway for protected routes.
# Resolves "Authorization: Bearer <token>" to a user id without touching the
# database, binds it to request.state.user_id, or aborts with 401.

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param
from starlette.requests import HTTPConnection

from .errors import Unauthenticated
from .security import TokenIssuer

# auto_error=False: missing/odd headers are reported as Unauthenticated below
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_issuer(conn: HTTPConnection) -> TokenIssuer:
    return conn.app.state.token_issuer


def resolve_user_id(token: Optional[str], issuer: TokenIssuer) -> int:
    """Verify a raw bearer token; raise Unauthenticated/InvalidToken."""
    if not token:
        raise Unauthenticated()
    return issuer.verify(token)


def bearer_from_header(authorization: Optional[str]) -> Optional[str]:
    scheme, param = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not param:
        return None
    return param


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> int:
    """FastAPI dependency: the authenticated user's id."""
    token = credentials.credentials if credentials else None
    user_id = resolve_user_id(token, issuer)
    request.state.user_id = user_id
    return user_id


def websocket_user_id(conn: HTTPConnection, issuer: TokenIssuer) -> int:
    """Same check for the websocket handshake; `?token=` is accepted as a fallback."""
    token = bearer_from_header(conn.headers.get("authorization")) or conn.query_params.get("token")
    user_id = resolve_user_id(token, issuer)
    conn.state.user_id = user_id
    return user_id
