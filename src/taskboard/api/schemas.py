from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import TaskPriority, TaskStatus

# Shared type for incoming due dates which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]

TITLE_MAX = 100
DESCRIPTION_MAX = 500
NAME_MIN, NAME_MAX = 2, 50
PASSWORD_MIN = 6

# Fields an update may explicitly set to null
_NULLABLE_FIELDS = {"description", "due_date"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due date input into an aware UTC datetime.
    - Strings are parsed via datetime.fromisoformat, falling back to date.fromisoformat.
    - A date (not datetime) is promoted to midnight.
    - Naive datetimes are taken to be UTC.
    """
    if value is None:
        return None

    if isinstance(value, str):
        s = value.strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(s)
        except ValueError:
            try:
                value = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Due date must be a valid ISO8601 date or datetime (e.g., '2030-01-31' or '2030-01-31T13:45:00Z')"
                ) from e

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    raise ValueError("Invalid type for due date; expected date, datetime, or ISO8601 string.")


def _check_future(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value <= utcnow():
        raise ValueError("Due date must be in the future")
    return value


def _normalize_email(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _clean_title(value: str) -> str:
    s = value.strip()
    if not (1 <= len(s) <= TITLE_MAX):
        raise ValueError(f"Title must be between 1 and {TITLE_MAX} characters")
    return s


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    s = value.strip()
    if len(s) > DESCRIPTION_MAX:
        raise ValueError(f"Description cannot exceed {DESCRIPTION_MAX} characters")
    return s


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TaskCreate(CamelModel):
    """
    Schema for creating a new task. ``position`` and ``user`` are assigned
    server-side.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        json_schema_extra={
            "example": {
                "title": "Write release notes",
                "description": "Summarise the changes since 1.2",
                "priority": "high",
                "status": "todo",
                "dueDate": "2030-02-01",
            }
        },
    )

    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority level")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Status column")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time; must be in the future. Dates are set to 00:00 UTC",
    )

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_future(v)


# PUBLIC_INTERFACE
class TaskUpdate(CamelModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated. An explicit
    null clears ``description`` and ``dueDate``.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={"example": {"title": "Write and publish release notes", "status": "in-progress"}},
    )

    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[TaskPriority] = Field(default=None, description="Priority level")
    status: Optional[TaskStatus] = Field(default=None, description="Status column")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time; must be in the future")
    position: Optional[int] = Field(default=None, ge=0, description="Rank within the status column")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return _clean_description(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return _parse_due_date(v)

    @field_validator("due_date")
    @classmethod
    def validate_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _check_future(v)

    def changes(self) -> Dict[str, Any]:
        """Return the snake_case fields this update actually sets."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k in _NULLABLE_FIELDS}


# PUBLIC_INTERFACE
class TaskOut(CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "title": "Write release notes",
                "description": "Summarise the changes since 1.2",
                "priority": "high",
                "status": "todo",
                "dueDate": "2030-02-01T00:00:00Z",
                "position": 0,
                "user": 1,
                "createdAt": "2030-01-25T10:15:30.123456Z",
                "updatedAt": "2030-01-26T09:00:00.000001Z",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    position: int = Field(..., description="Rank within the status column")
    user: int = Field(..., description="Owning user id")
    created_at: datetime
    updated_at: datetime


class DragPoint(CamelModel):
    status: TaskStatus
    index: int = Field(..., ge=0)


class TaskRef(CamelModel):
    """Identifies the dragged task; any other task fields sent along are ignored."""

    id: int


# PUBLIC_INTERFACE
class DragResult(CamelModel):
    """Reorder request: move ``task`` from one column slot to another."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "from": {"status": "todo", "index": 0},
                "to": {"status": "in-progress", "index": 0},
                "task": {"id": 7},
            }
        }
    )

    from_: DragPoint = Field(..., alias="from")
    to: DragPoint
    task: TaskRef


class RegisterRequest(CamelModel):
    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        s = v.strip()
        if not (NAME_MIN <= len(s) <= NAME_MAX):
            raise ValueError(f"Name must be between {NAME_MIN} and {NAME_MAX} characters")
        return s

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN:
            raise ValueError(f"Password must be at least {PASSWORD_MIN} characters long")
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class UserOut(CamelModel):
    """Public view of a user; the password hash is never part of it."""

    id: int
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


# Response envelopes


class TaskData(CamelModel):
    task: TaskOut


class TaskEnvelope(CamelModel):
    success: bool = True
    data: TaskData


class TaskListData(CamelModel):
    tasks: List[TaskOut]


class TaskListEnvelope(CamelModel):
    success: bool = True
    results: int = Field(..., description="Number of tasks returned")
    data: TaskListData


class ReorderData(CamelModel):
    updated: List[TaskOut] = Field(..., description="All of the user's tasks, by position")
    task: TaskOut = Field(..., description="The moved task")


class ReorderEnvelope(CamelModel):
    success: bool = True
    data: ReorderData


class UserData(CamelModel):
    user: UserOut


class UserEnvelope(CamelModel):
    success: bool = True
    data: UserData


class AuthEnvelope(CamelModel):
    success: bool = True
    token: str
    data: UserData
