# Security utilities package: password hashing and session tokens

from .passwords import BcryptHasher, Hasher
from .tokens import (
    JWTTokenIssuer,
    SignedTokenIssuer,
    TokenIssuer,
    build_token_issuer,
)

__all__ = [
    "BcryptHasher",
    "Hasher",
    "JWTTokenIssuer",
    "SignedTokenIssuer",
    "TokenIssuer",
    "build_token_issuer",
]
