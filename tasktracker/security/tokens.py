"""Stateless session tokens.

A token is a signed claim {"sub": <user id>, "iat": <issued at>}. There is
no expiry and no server-side revocation list: a token stays valid until the
signing secret is rotated. This is a known limitation, kept on purpose.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Protocol

from itsdangerous import BadSignature, URLSafeSerializer
from jose import JWTError, jwt

from ..config import Settings
from ..errors import InvalidToken


class TokenIssuer(Protocol):
    def issue(self, user_id: int) -> str: ...

    def verify(self, token: str) -> int: ...


def _claims(user_id: int) -> Dict[str, Any]:
    return {"sub": str(user_id), "iat": int(datetime.now(timezone.utc).timestamp())}


def _subject(payload: Any) -> int:
    """Extract the numeric user id from a decoded payload."""
    if not isinstance(payload, dict):
        raise InvalidToken()
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise InvalidToken()
    return int(subject)


class JWTTokenIssuer:
    """HS256 (or configured algorithm) JWT without an `exp` claim."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        self.secret = secret
        self.algorithm = algorithm

    def issue(self, user_id: int) -> str:
        return jwt.encode(_claims(user_id), self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as err:
            raise InvalidToken() from err
        return _subject(payload)


class SignedTokenIssuer:
    """itsdangerous URL-safe signed payload (untimed serializer: no expiry)."""

    def __init__(self, secret: str, salt: str = "tasktracker.session.v1"):
        self._serializer = URLSafeSerializer(secret_key=secret, salt=salt)

    def issue(self, user_id: int) -> str:
        return self._serializer.dumps(_claims(user_id))

    def verify(self, token: str) -> int:
        try:
            payload = self._serializer.loads(token)
        except BadSignature as err:
            raise InvalidToken() from err
        return _subject(payload)


def build_token_issuer(settings: Settings) -> TokenIssuer:
    if settings.TOKEN_SCHEME == "signed":
        return SignedTokenIssuer(settings.JWT_SECRET)
    return JWTTokenIssuer(settings.JWT_SECRET, settings.JWT_ALGORITHM)
