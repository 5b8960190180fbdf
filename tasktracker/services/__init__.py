# Business logic on top of the stores: accounts and tasks

from .accounts import AccountService, AuthResult
from .tasks import TaskService

__all__ = ["AccountService", "AuthResult", "TaskService"]
