from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..api.schemas import DragResult
from .api import ApiError, Session, Task, TaskboardClient, User
from .state import BoardState, UNSET

logger = logging.getLogger(__name__)


class Board:
    """
    Application root for a task board client.

    Owns the API client, the session and the ``BoardState``. Every action
    talks to the server first and applies the matching state transition only
    once the server has answered.
    """

    def __init__(self, client: TaskboardClient, session: Optional[Session] = None) -> None:
        self.client = client
        self.session = session or Session()
        self.state = BoardState()

    # Auth actions

    def login(self, email: str, password: str) -> User:
        self.state.set_auth_loading(True)
        try:
            user = self.client.login(self.session, email, password)
        except ApiError as e:
            self.state.set_error(e.message or "Login failed")
            raise
        finally:
            self.state.set_auth_loading(False)
        self.state.set_user(user)
        self.state.set_success("Login successful!")
        return user

    def register(self, name: str, email: str, password: str) -> User:
        self.state.set_auth_loading(True)
        try:
            user = self.client.register(self.session, name, email, password)
        except ApiError as e:
            self.state.set_error(e.message or "Registration failed")
            raise
        finally:
            self.state.set_auth_loading(False)
        self.state.set_user(user)
        self.state.set_success("Registration successful!")
        return user

    def logout(self) -> None:
        self.session.clear()
        self.state.clear_auth()
        self.state.set_success("Logged out successfully")

    def fetch_profile(self) -> Optional[User]:
        """Refresh the signed-in user; a rejected session signs the board out."""
        try:
            user = self.client.get_profile(self.session)
        except ApiError:
            self.session.clear()
            self.state.clear_auth()
            return None
        self.state.set_user(user)
        return user

    # Task actions

    def fetch_tasks(self) -> None:
        """Reload tasks with the active filters. Failures are recorded, not raised."""
        filters = self.state.filters
        self.state.set_tasks_loading(True)
        try:
            tasks = self.client.list_tasks(
                self.session, status=filters.status, priority=filters.priority, sort=filters.sort
            )
        except ApiError as e:
            self.state.set_error(e.message or "Failed to fetch tasks")
            return
        finally:
            self.state.set_tasks_loading(False)
        self.state.set_tasks(tasks)

    def create_task(self, task_data: Mapping[str, Any]) -> Task:
        try:
            task = self.client.create_task(self.session, task_data)
        except ApiError as e:
            self.state.set_error(e.message or "Failed to create task")
            raise
        self.state.add_task(task)
        self.state.set_success("Task created successfully!")
        return task

    def update_task(self, task_id: int, task_data: Mapping[str, Any]) -> Task:
        try:
            task = self.client.update_task(self.session, task_id, task_data)
        except ApiError as e:
            self.state.set_error(e.message or "Failed to update task")
            raise
        self.state.replace_task(task)
        self.state.set_success("Task updated successfully!")
        return task

    def delete_task(self, task_id: int) -> None:
        try:
            self.client.delete_task(self.session, task_id)
        except ApiError as e:
            self.state.set_error(e.message or "Failed to delete task")
            raise
        self.state.remove_task(task_id)
        self.state.set_success("Task deleted successfully!")

    def set_filters(self, status: Any = UNSET, priority: Any = UNSET, sort: Any = UNSET) -> None:
        self.state.set_filters(status=status, priority=priority, sort=sort)
        self.fetch_tasks()

    def reorder_tasks(self, drag: DragResult) -> None:
        """
        Apply a drag-and-drop move. On failure the error is recorded, the
        full list is fetched again and the error is re-raised.
        """
        try:
            result = self.client.reorder_tasks(self.session, drag)
        except ApiError as e:
            self.state.set_error(e.message or "Failed to reorder tasks")
            logger.warning("Reorder of task %s failed; refetching", drag.task.id)
            self.fetch_tasks()
            raise
        self.state.apply_reorder(result.updated, result.task)
