"""Domain errors. Each carries the HTTP status it maps to.

Handlers in tasktracker.api.errors render them as
{"error": <message>, "status": <code>, "path": <path>}.
"""

from typing import Dict, List, Optional


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, *, headers: Optional[Dict[str, str]] = None):
        self.message = message or self.default_message
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: Optional[str] = None, *, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authorization header is required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(Unauthenticated):
    default_message = "Invalid token"


class NotFound(AppError):
    status_code = 404
    default_message = "Task not found"


class EmailTaken(AppError):
    status_code = 400
    default_message = "Email already exists"


class InvalidCredentials(AppError):
    # Same message for unknown email and wrong password.
    status_code = 400
    default_message = "Invalid email or password"


class StorageError(AppError):
    status_code = 500
    default_message = "Database error"
