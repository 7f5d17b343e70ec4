"""Local mirror of the signed-in user's tasks.

``BoardState`` is mutated only through its named transitions; the derived
views (``by_status``, ``stats``, ``filtered``) are recomputed on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..api.models import STATUS_ORDER, TaskPriority, TaskStatus
from .api import Task, User

DEFAULT_SORT = "-createdAt"

UNSET: Any = object()


def _board_key(task: Task):
    return (STATUS_ORDER[TaskStatus(task.status).value], task.position)


@dataclass
class Filters:
    status: Optional[str] = None
    priority: Optional[str] = None
    sort: str = DEFAULT_SORT


@dataclass
class TaskStats:
    total: int = 0
    todo: int = 0
    in_progress: int = 0
    completed: int = 0
    by_priority: Dict[str, int] = field(default_factory=lambda: {p.value: 0 for p in TaskPriority})

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "todo": self.todo,
            "inProgress": self.in_progress,
            "completed": self.completed,
            "byPriority": dict(self.by_priority),
        }


_STATUS_COUNTER = {
    TaskStatus.TODO.value: "todo",
    TaskStatus.IN_PROGRESS.value: "in_progress",
    TaskStatus.COMPLETED.value: "completed",
}


class BoardState:
    """State container for the client application."""

    def __init__(self) -> None:
        self.user: Optional[User] = None
        self.is_authenticated = False
        self.auth_loading = False

        self.tasks: List[Task] = []
        self.tasks_loading = False
        self.current_task: Optional[Task] = None
        self.filters = Filters()

        self.error: Optional[str] = None
        self.success: Optional[str] = None

    # Auth transitions

    def set_auth_loading(self, loading: bool) -> None:
        self.auth_loading = loading

    def set_user(self, user: User) -> None:
        self.user = user
        self.is_authenticated = True

    def clear_auth(self) -> None:
        self.user = None
        self.is_authenticated = False
        self.tasks = []

    # Task transitions

    def set_tasks_loading(self, loading: bool) -> None:
        self.tasks_loading = loading

    def set_tasks(self, tasks: Iterable[Task]) -> None:
        """Install a fetched list, ordered by column then position."""
        self.tasks = sorted(tasks, key=_board_key)

    def add_task(self, task: Task) -> None:
        """New tasks show first, whatever their position."""
        self.tasks.insert(0, task)

    def replace_task(self, task: Task) -> None:
        for i, existing in enumerate(self.tasks):
            if existing.id == task.id:
                self.tasks[i] = task
                return

    def remove_task(self, task_id: int) -> None:
        self.tasks = [t for t in self.tasks if t.id != task_id]

    def set_current_task(self, task: Optional[Task]) -> None:
        self.current_task = task

    def set_filters(self, status: Any = UNSET, priority: Any = UNSET, sort: Any = UNSET) -> None:
        """Merge a filter selection. Omitted values are kept; None drops a filter."""
        if status is not UNSET:
            self.filters.status = status
        if priority is not UNSET:
            self.filters.priority = priority
        if sort is not UNSET:
            self.filters.sort = sort or DEFAULT_SORT

    def apply_reorder(self, updated: Iterable[Task], task: Task) -> None:
        """Merge a reorder result by id, then restore board order."""
        incoming = {t.id: t for t in updated}
        incoming[task.id] = task
        self.tasks = sorted((incoming.get(t.id, t) for t in self.tasks), key=_board_key)

    # UI transitions

    def set_error(self, message: str) -> None:
        self.error = message
        self.success = None

    def set_success(self, message: str) -> None:
        self.success = message
        self.error = None

    def clear_messages(self) -> None:
        self.error = None
        self.success = None

    # Derived views

    def by_status(self, status: str) -> List[Task]:
        return sorted((t for t in self.tasks if t.status == status), key=lambda t: t.position)

    def stats(self) -> TaskStats:
        stats = TaskStats()
        for task in self.tasks:
            stats.total += 1
            counter = _STATUS_COUNTER[TaskStatus(task.status).value]
            setattr(stats, counter, getattr(stats, counter) + 1)
            stats.by_priority[TaskPriority(task.priority).value] += 1
        return stats

    def filtered(self) -> List[Task]:
        tasks = list(self.tasks)
        if self.filters.status:
            tasks = [t for t in tasks if t.status == self.filters.status]
        if self.filters.priority:
            tasks = [t for t in tasks if t.priority == self.filters.priority]
        return tasks

    @property
    def is_loading(self) -> bool:
        return self.auth_loading or self.tasks_loading
