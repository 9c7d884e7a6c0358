"""
Viewer-first ordering of the task list.

Tasks owned by the viewer come first, everything else after. Each bucket is
ordered by ``last_updated`` descending; rows without a timestamp go last in
their bucket and ties keep storage order.
"""
from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import COLS, TaskEntity

# One positional parameter: the viewer identity. NULLS LAST keeps postgres
# in line with sqlite, which already sorts NULL lowest.
VIEWER_FIRST_ORDER_BY = (
    f"ORDER BY CASE WHEN {COLS.table}.{COLS.owner} = {{param}} THEN 0 ELSE 1 END, "
    f"{COLS.table}.{COLS.last_updated} DESC NULLS LAST"
)


def _sort_key(task: TaskEntity, viewer: str) -> Tuple[int, int, int]:
    bucket = 0 if task["owner_identity"] == viewer else 1
    ts = task["last_updated"]
    if ts is None:
        return bucket, 1, 0
    return bucket, 0, -ts


# PUBLIC_INTERFACE
def order_for_viewer(tasks: Iterable[TaskEntity], viewer: str) -> List[TaskEntity]:
    """Return tasks in viewer-first, most-recently-updated order (stable)."""
    return sorted(tasks, key=lambda t: _sort_key(t, viewer))


# PUBLIC_INTERFACE
def order_by_clause(param: str) -> str:
    """SQL ORDER BY fragment using ``param`` as the viewer placeholder."""
    return VIEWER_FIRST_ORDER_BY.format(param=param)
