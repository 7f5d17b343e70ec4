"""Ownership-scoped task and account operations.

Routers call into these services; the services talk to the repositories and
raise the error types from ``errors``. A task owned by another user is always
reported exactly like a missing one.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .errors import AuthenticationError, NotFoundError
from .logging import span
from .models import TaskEntity, UserEntity
from .repositories import DEFAULT_SORT, ListQuery, Repositories, TaskRepository
from .schemas import DragResult, TaskCreate, TaskUpdate
from .security import create_access_token, hash_password, verify_password
from .settings import Settings

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found"
BAD_CREDENTIALS = "Incorrect email or password"


class TaskService:
    """Task queries, position assignment and reordering for one store."""

    def __init__(self, tasks: TaskRepository) -> None:
        self._tasks = tasks

    def list_tasks(
        self,
        user_id: int,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> List[TaskEntity]:
        """Return the user's tasks, optionally filtered, in the requested order."""
        query = ListQuery(status=status, priority=priority, sort=sort or DEFAULT_SORT)
        with span("task_service.list_tasks", user_id=user_id):
            return self._tasks.list(user_id, query)

    def get_task(self, task_id: int, user_id: int) -> TaskEntity:
        """
        Raises:
            NotFoundError: if the task is absent or owned by another user.
        """
        task = self._tasks.get(task_id, user_id)
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        return task

    def create_task(self, data: TaskCreate, user_id: int) -> TaskEntity:
        """Create a task appended to the end of its status column."""
        with span("task_service.create_task", user_id=user_id):
            task = self._tasks.create(data, user_id)
        logger.info(
            "Created task %s for user %s in %s at position %s",
            task["id"],
            user_id,
            task["status"],
            task["position"],
        )
        return task

    def update_task(self, task_id: int, user_id: int, data: TaskUpdate) -> TaskEntity:
        with span("task_service.update_task", user_id=user_id, task_id=task_id):
            task = self._tasks.update(task_id, user_id, data.changes())
        if task is None:
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info("Updated task %s for user %s", task_id, user_id)
        return task

    def delete_task(self, task_id: int, user_id: int) -> None:
        with span("task_service.delete_task", user_id=user_id, task_id=task_id):
            deleted = self._tasks.delete(task_id, user_id)
        if not deleted:
            raise NotFoundError(TASK_NOT_FOUND)
        logger.info("Deleted task %s for user %s", task_id, user_id)

    def reorder_tasks(self, user_id: int, drag: DragResult) -> Tuple[List[TaskEntity], TaskEntity]:
        """
        Move the dragged task to ``drag.to`` and renumber the affected columns.

        Returns:
            (all of the user's tasks sorted by position, the moved task)

        Raises:
            NotFoundError: if the task is absent or owned by another user.
        """
        to_status = drag.to.status.value
        with span("task_service.reorder_tasks", user_id=user_id, task_id=drag.task.id):
            moved = self._tasks.move(drag.task.id, user_id, to_status, drag.to.index)
            if moved is None:
                raise NotFoundError(TASK_NOT_FOUND)
            updated = self._tasks.list(user_id, ListQuery(sort="position"))
        logger.info(
            "Moved task %s for user %s from %s[%s] to %s[%s]",
            moved["id"],
            user_id,
            drag.from_.status.value,
            drag.from_.index,
            moved["status"],
            moved["position"],
        )
        return updated, moved


class AccountService:
    """Registration, login and token issuance."""

    def __init__(self, repos: Repositories, settings: Settings) -> None:
        self._users = repos.users
        self._settings = settings

    def register(self, name: str, email: str, password: str) -> Tuple[UserEntity, str]:
        """
        Create an account and return it with a fresh access token.

        Raises:
            ConflictError: if the email is already registered.
        """
        with span("account_service.register"):
            user = self._users.create(name=name, email=email, password_hash=hash_password(password))
        logger.info("Registered user %s", user["id"])
        return user, create_access_token(user["id"], self._settings)

    def login(self, email: str, password: str) -> Tuple[UserEntity, str]:
        """
        Raises:
            AuthenticationError: for an unknown email or a wrong password alike.
        """
        with span("account_service.login"):
            user = self._users.get_by_email(email)
            if user is None or not verify_password(password, user["password_hash"]):
                raise AuthenticationError(BAD_CREDENTIALS)
        logger.info("User %s logged in", user["id"])
        return user, create_access_token(user["id"], self._settings)
