# PURPOSE: registration and login (credential store + session issuer).

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from .. import store_db
from ..db_models import UserDB
from ..errors import EmailTaken, InvalidCredentials
from ..models import LoginRequest, RegisterRequest, validate_payload
from ..security import Hasher, TokenIssuer

logger = logging.getLogger("tasktracker.accounts")


@dataclass
class AuthResult:
    token: str
    user: UserDB


class AccountService:
    def __init__(self, db: Session, hasher: Hasher, issuer: TokenIssuer):
        self.db = db
        self.hasher = hasher
        self.issuer = issuer

    def register(self, raw: Any) -> AuthResult:
        payload = validate_payload(RegisterRequest, raw)
        # Fast path only; create_user maps a unique-index violation to EmailTaken too.
        if store_db.get_user_by_email(self.db, payload.email) is not None:
            raise EmailTaken()
        user = store_db.create_user(
            self.db,
            email=payload.email,
            password_hash=self.hasher.hash(payload.password),
            name=payload.name,
        )
        logger.info("user registered user_id=%s", user.id)
        return AuthResult(token=self.issuer.issue(user.id), user=user)

    def login(self, raw: Any) -> AuthResult:
        payload = validate_payload(LoginRequest, raw)
        user = store_db.get_user_by_email(self.db, payload.email)
        # Unknown email and wrong password are indistinguishable to the caller.
        if user is None or not self.hasher.verify(user.password_hash, payload.password):
            logger.info("login rejected")
            raise InvalidCredentials()
        return AuthResult(token=self.issuer.issue(user.id), user=user)
