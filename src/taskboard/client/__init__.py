"""Python client for the task board API with a local task cache."""

from .api import ApiError, ClientConfig, ReorderResult, Session, TaskboardClient, UnauthorizedError
from .board import Board
from .state import BoardState, Filters, TaskStats

__all__ = [
    "ApiError",
    "Board",
    "BoardState",
    "ClientConfig",
    "Filters",
    "ReorderResult",
    "Session",
    "TaskStats",
    "TaskboardClient",
    "UnauthorizedError",
]
