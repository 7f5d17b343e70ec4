from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence, Union


# PUBLIC_INTERFACE
def list_envelope(items: Union[Sequence[Any], Iterable[Any]], key: str = "tasks") -> Dict[str, Any]:
    """
    Build the standard envelope for list endpoints.

    Args:
        items: The list/iterable of items to return.
        key: Name of the collection inside ``data``.

    Returns:
        Dict with keys: success, results, data.
    """
    # Ensure items is materialized as a list (in case an iterator is passed)
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    return {
        "success": True,
        "results": len(materialized),
        "data": {key: materialized},
    }


# PUBLIC_INTERFACE
def item_envelope(item: Any, key: str = "task") -> Dict[str, Any]:
    """Build the standard envelope for single-item endpoints."""
    return {"success": True, "data": {key: item}}
