from __future__ import annotations

from typing import Protocol

import bcrypt

# bcrypt ignores (bcrypt>=5 rejects) input past 72 bytes
_BCRYPT_MAX_BYTES = 72


class Hasher(Protocol):
    """One-way salted password hashing."""

    def hash(self, plaintext: str) -> str: ...

    def verify(self, hashed: str, plaintext: str) -> bool: ...


class BcryptHasher:
    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        if not isinstance(password, str):
            raise TypeError("password must be a string")
        return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash for the given plain password."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(plaintext), salt).decode("utf-8")

    def verify(self, hashed: str, plaintext: str) -> bool:
        """Verify a plain password against its bcrypt hash."""
        try:
            return bcrypt.checkpw(self._encode(plaintext), hashed.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False
