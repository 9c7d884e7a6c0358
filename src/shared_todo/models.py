from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a shared task.

    Fields:
    - id: Unique, monotonically assigned integer identifier
    - owner_identity: Resolved identity of the creator; never changes
    - text: Task content; never changes
    - completed: Completion flag, mutable by the owner only
    - last_updated: Unix epoch milliseconds of creation or last toggle
      (None for rows migrated from a schema without the column)
    - display_name: Owner's display name when listed, None if never set
    """

    id: int
    owner_identity: str
    text: str
    completed: bool
    last_updated: Optional[int]
    display_name: Optional[str]


# PUBLIC_INTERFACE
class IdentityEntity(TypedDict):
    """An identity with its optional display name."""

    identity: str
    display_name: Optional[str]


@dataclass(frozen=True)
class _Cols:
    # Column names are shared with databases created by the earlier service.
    table: str = "tasks"
    id: str = "id"
    owner: str = "user_ip"
    text: str = "text"
    completed: str = "completed"
    last_updated: str = "last_updated"
    users: str = "users"
    ip: str = "ip"
    display_name: str = "display_name"


COLS = _Cols()
