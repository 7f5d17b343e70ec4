"""Position arithmetic for status columns.

A column is the set of one user's tasks sharing a status, ordered by
``position`` (ties broken by ``id``). These helpers are pure; the storage
backends call them inside their own atomic sections.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .models import TaskEntity


# PUBLIC_INTERFACE
def next_position(positions: Iterable[int]) -> int:
    """Position for a task appended to a column: max + 1, or 0 when empty."""
    return max(positions, default=-1) + 1


# PUBLIC_INTERFACE
def column_order(tasks: Iterable[Mapping]) -> List:
    """Return ``tasks`` sorted by (position, id)."""
    return sorted(tasks, key=lambda t: (t["position"], t["id"]))


# PUBLIC_INTERFACE
def plan_move(
    tasks: Sequence[TaskEntity],
    task_id: int,
    to_status: str,
    to_index: int,
) -> Dict[int, Tuple[str, int]]:
    """
    Compute the (status, position) assignments for moving one task.

    The task is removed from its current column and inserted into the
    ``to_status`` column at ``to_index`` (clamped to the column length). The
    source and destination columns are then renumbered 0..n-1. Only tasks
    whose status or position actually changes appear in the result.

    Raises:
        KeyError: if ``task_id`` is not among ``tasks``.
    """
    by_id = {t["id"]: t for t in tasks}
    moved = by_id[task_id]
    from_status = moved["status"]

    def column(status: str) -> List[TaskEntity]:
        return column_order(t for t in tasks if t["status"] == status and t["id"] != task_id)

    destination = column(to_status)
    index = min(max(to_index, 0), len(destination))
    destination.insert(index, moved)

    columns = [(to_status, destination)]
    if from_status != to_status:
        columns.append((from_status, column(from_status)))

    changes: Dict[int, Tuple[str, int]] = {}
    for status, members in columns:
        for position, task in enumerate(members):
            if task["status"] != status or task["position"] != position:
                changes[task["id"]] = (status, position)
    return changes
