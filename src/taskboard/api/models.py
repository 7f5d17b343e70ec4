from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, TypedDict


class TaskStatus(str, Enum):
    """Status columns, in board order."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    """Task priority levels, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Column order used wherever tasks from several columns are shown together.
STATUS_ORDER: Dict[str, int] = {s.value: i for i, s in enumerate(TaskStatus)}
PRIORITY_RANK: Dict[str, int] = {p.value: i for i, p in enumerate(TaskPriority)}


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task record as held by the storage backends.

    Fields:
    - id: Unique integer identifier, allocated by the store
    - title: Short title (1..100 chars, trimmed on input via schemas)
    - description: Optional detailed description (<= 500 chars)
    - priority: 'low' | 'medium' | 'high'
    - status: 'todo' | 'in-progress' | 'completed'
    - due_date: Optional due datetime (UTC)
    - position: Rank within the owner's status column
    - user: Owning user's id
    - created_at / updated_at: UTC timestamps maintained by the store
    """

    id: int
    title: str
    description: Optional[str]
    priority: str
    status: str
    due_date: Optional[datetime]
    position: int
    user: int
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """A user record. ``password_hash`` never leaves the API layer."""

    id: int
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
