# PURPOSE: request/response schemas and the explicit validation pass.
# Routes decode JSON into plain dicts; validate_payload() turns them into
# schema objects or raises ValidationFailed with a list of field errors.

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Mapping, TypeVar, get_args

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError, field_serializer

from .errors import ValidationFailed

Status = Literal["Pending", "In-Progress", "Completed"]
Priority = Literal["Low", "Medium", "High", "Critical"]

STATUS_VALUES: tuple[str, ...] = get_args(Status)
PRIORITY_VALUES: tuple[str, ...] = get_args(Priority)


def _check_email(value: str) -> str:
    # Format check only; the address is stored exactly as given (case-sensitive).
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as err:
        raise ValueError(str(err)) from err
    return value


EmailAddress = Annotated[str, AfterValidator(_check_email)]


# --- Task schemas ---


class TaskPayload(BaseModel):
    """Body of POST /tasks and PUT /tasks/{id} (PUT is a full replace)."""

    title: str = Field(min_length=1)
    description: str | None = None
    status: Status
    priority: Priority
    due_date: str | None = None  # raw; normalised by tasktracker.dates
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"title": "Buy milk", "status": "Pending", "priority": "Low"},
                {
                    "title": "Ship release",
                    "description": "tag and publish",
                    "status": "In-Progress",
                    "priority": "Critical",
                    "due_date": "2025-12-31",
                },
            ]
        },
    )


class TaskFilters(BaseModel):
    status: str | None = None
    priority: str | None = None
    due_before: datetime | None = None


class Task(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    status: Status
    priority: Priority
    due_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # ORM -> schema

    @field_serializer("due_date", "created_at", "updated_at")
    def serialize_utc(self, value: datetime) -> datetime:
        # columns hold naive UTC; emit it with an explicit Z
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class MessageResponse(BaseModel):
    message: str


# --- User / Auth schemas ---


class RegisterRequest(BaseModel):
    email: EmailAddress
    # bcrypt only looks at the first 72 bytes
    password: str = Field(min_length=6, max_length=72)
    name: str = Field(min_length=1, max_length=100)
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{"email": "ann@example.com", "password": "secret-123", "name": "Ann"}]
        }
    )


class LoginRequest(BaseModel):
    email: EmailAddress
    password: str = Field(min_length=1)


class UserPublic(BaseModel):
    id: int
    email: str
    name: str
    model_config = ConfigDict(from_attributes=True)  # allow ORM -> schema


class AuthResponse(BaseModel):
    token: str
    user: UserPublic
    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"token": "<token>", "user": {"id": 1, "email": "ann@example.com", "name": "Ann"}}
            ]
        }
    )


# --- Validation pass ---

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def field_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into [{"field": ..., "message": ...}]."""
    out = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        out.append({"field": field, "message": err.get("msg", "invalid value")})
    return out


def validate_payload(schema: type[SchemaT], raw: Any) -> SchemaT:
    """Validate an already-decoded request body against `schema`."""
    if not isinstance(raw, Mapping):
        raise ValidationFailed(
            "Request body must be a JSON object",
            errors=[{"field": "body", "message": "expected an object"}],
        )
    try:
        return schema.model_validate(dict(raw))
    except ValidationError as exc:
        errors = field_errors(exc)
        first = errors[0]
        raise ValidationFailed(f"{first['field']}: {first['message']}", errors=errors) from exc
