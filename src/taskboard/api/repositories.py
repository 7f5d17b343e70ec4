from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import ConflictError
from .models import PRIORITY_RANK, STATUS_ORDER, TaskEntity, UserEntity
from .ordering import next_position, plan_move
from .schemas import TaskCreate, utcnow
from .settings import Settings, get_settings

DEFAULT_SORT = "-createdAt"

# Public sort keys (camelCase, as sent by clients) -> entity field
SORT_FIELDS: Dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "title": "title",
    "priority": "priority",
    "status": "status",
    "position": "position",
}


@dataclass(frozen=True)
class ListQuery:
    """
    Filters for listing one user's tasks.
    """
    status: Optional[str] = None
    priority: Optional[str] = None
    sort: str = DEFAULT_SORT  # [-]createdAt, updatedAt, dueDate, title, priority, status, position


# PUBLIC_INTERFACE
def parse_sort(sort: Optional[str]) -> Tuple[str, bool]:
    """
    Resolve a sort string into (entity field, descending).

    A leading '-' means descending. Field names may be camelCase or
    snake_case; unknown fields fall back to the default '-createdAt'.
    """
    key = (sort or DEFAULT_SORT).strip()
    reverse = key.startswith("-")
    name = key.lstrip("-+")
    if name in SORT_FIELDS:
        return SORT_FIELDS[name], reverse
    if name in SORT_FIELDS.values():
        return name, reverse
    return SORT_FIELDS[DEFAULT_SORT[1:]], True


def _sort_value(field: str) -> Callable[[Mapping[str, Any]], Any]:
    if field == "priority":
        return lambda t: PRIORITY_RANK.get(t["priority"], 0)
    if field == "status":
        return lambda t: STATUS_ORDER.get(t["status"], 0)
    if field == "due_date":
        # Missing due dates sort first ascending
        return lambda t: (t["due_date"] is not None, t["due_date"] or datetime.min)
    return lambda t: t[field]


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract contract for task storage backends. Every operation is scoped to
    the owning user: a task belonging to another user behaves as absent.
    """

    @abstractmethod
    def create(self, data: TaskCreate, user_id: int) -> TaskEntity:
        """
        Create a task at the end of its (user, status) column and return it.
        Reading the column maximum and inserting happen as one atomic step.
        """

    @abstractmethod
    def get(self, task_id: int, user_id: int) -> Optional[TaskEntity]:
        """Return the task, or None if absent or owned by another user."""

    @abstractmethod
    def update(self, task_id: int, user_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """Apply field changes. Return the updated task or None if not found."""

    @abstractmethod
    def delete(self, task_id: int, user_id: int) -> bool:
        """Delete a task. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, user_id: int, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        """
        Return the user's tasks matching the query.
        - Filter by status and/or priority
        - Sort by the query's sort key, ties broken by id in the same direction
        """

    @abstractmethod
    def move(self, task_id: int, user_id: int, to_status: str, to_index: int) -> Optional[TaskEntity]:
        """
        Move a task to ``to_index`` of the ``to_status`` column, renumbering
        the source and destination columns to 0..n-1 atomically. Return the
        moved task or None if not found.
        """


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract contract for user storage backends."""

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        """Create a user. Raises ConflictError if the email is taken."""

    @abstractmethod
    def get(self, user_id: int) -> Optional[UserEntity]:
        """Return a user by id, or None."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by (lower-cased) email, or None."""


@dataclass
class Repositories:
    """The storage backends an application instance works against."""

    tasks: TaskRepository
    users: UserRepository
    backend: str = "memory"


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[int, TaskEntity] = {}
        self._next_id = 1

    def _owned(self, task_id: int, user_id: int) -> Optional[TaskEntity]:
        item = self._items.get(task_id)
        if item is None or item["user"] != user_id:
            return None
        return item

    def create(self, data: TaskCreate, user_id: int) -> TaskEntity:
        now = utcnow()
        with self._lock:
            position = next_position(
                t["position"] for t in self._items.values() if t["user"] == user_id and t["status"] == data.status
            )
            entity: TaskEntity = {
                "id": self._next_id,
                "title": data.title,
                "description": data.description,
                "priority": data.priority,
                "status": data.status,
                "due_date": data.due_date,
                "position": position,
                "user": user_id,
                "created_at": now,
                "updated_at": now,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def get(self, task_id: int, user_id: int) -> Optional[TaskEntity]:
        with self._lock:
            item = self._owned(task_id, user_id)
            return None if item is None else item.copy()

    def update(self, task_id: int, user_id: int, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._owned(task_id, user_id)
            if existing is None:
                return None

            updated = existing.copy()
            for key, value in changes.items():
                if key in ("id", "user", "created_at", "updated_at"):
                    continue
                updated[key] = value  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[task_id] = updated
            return updated.copy()

    def delete(self, task_id: int, user_id: int) -> bool:
        with self._lock:
            if self._owned(task_id, user_id) is None:
                return False
            del self._items[task_id]
            return True

    def list(self, user_id: int, query: Optional[ListQuery] = None) -> List[TaskEntity]:
        q = query or ListQuery()
        with self._lock:
            items = [t for t in self._items.values() if t["user"] == user_id]

            if q.status is not None:
                items = [t for t in items if t["status"] == q.status]
            if q.priority is not None:
                items = [t for t in items if t["priority"] == q.priority]

            field, reverse = parse_sort(q.sort)
            value = _sort_value(field)
            items_sorted = sorted(items, key=lambda t: (value(t), t["id"]), reverse=reverse)

            # Return copies to avoid external mutation
            return [t.copy() for t in items_sorted]

    def move(self, task_id: int, user_id: int, to_status: str, to_index: int) -> Optional[TaskEntity]:
        with self._lock:
            if self._owned(task_id, user_id) is None:
                return None
            owned = [t for t in self._items.values() if t["user"] == user_id]
            now = utcnow()
            for tid, (status, position) in plan_move(owned, task_id, to_status, to_index).items():
                updated = self._items[tid].copy()
                updated["status"] = status
                updated["position"] = position
                updated["updated_at"] = now
                self._items[tid] = updated
            return self._items[task_id].copy()


class InMemoryUserRepository(UserRepository):
    """Thread-safe in-memory user repository."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[int, UserEntity] = {}
        self._next_id = 1

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        now = utcnow()
        email = email.lower()
        with self._lock:
            if any(u["email"] == email for u in self._items.values()):
                raise ConflictError("email", "Email already exists")
            entity: UserEntity = {
                "id": self._next_id,
                "name": name,
                "email": email,
                "password_hash": password_hash,
                "created_at": now,
                "updated_at": now,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            return entity.copy()

    def get(self, user_id: int) -> Optional[UserEntity]:
        with self._lock:
            item = self._items.get(user_id)
            return None if item is None else item.copy()

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        email = email.lower()
        with self._lock:
            for item in self._items.values():
                if item["email"] == email:
                    return item.copy()
            return None


# PUBLIC_INTERFACE
def get_repositories(settings: Optional[Settings] = None) -> Repositories:
    """
    Factory returning the configured storage backends.
    - memory: InMemoryTaskRepository / InMemoryUserRepository
    - sqlite: SQLiteTaskRepository / SQLiteUserRepository sharing one database file
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository, SQLiteUserRepository

        return Repositories(
            tasks=SQLiteTaskRepository(settings.sqlite_db_path),
            users=SQLiteUserRepository(settings.sqlite_db_path),
            backend="sqlite",
        )
    return Repositories(tasks=InMemoryTaskRepository(), users=InMemoryUserRepository(), backend="memory")
