from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, Request

from .errors import ValidationFailed
from .identity import get_identity
from .models import IdentityEntity, TaskEntity
from .repositories import TaskStore

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskService:
    """
    The only path through which tasks are created, listed, toggled or deleted.

    Bound to one caller identity. Every mutation passes that identity down to
    the store, which applies it in the same statement as the change, so a
    foreign or missing task simply yields zero affected rows.
    """

    def __init__(self, store: TaskStore, identity: str) -> None:
        self.store = store
        self.identity = identity

    def list_for_viewer(self) -> List[TaskEntity]:
        return self.store.list_tasks(self.identity)

    def add_task(self, text: Optional[str]) -> int:
        """
        Create a task owned by the caller. The text is stored as sent;
        whitespace only matters for the emptiness check.

        Raises:
            ValidationFailed: text is missing or blank; nothing is stored.
        """
        if text is None or not text.strip():
            raise ValidationFailed("text", "Task text must not be empty")
        task_id = self.store.insert_task(self.identity, text)
        logger.info("Task %s added by %s", task_id, self.identity)
        return task_id

    def toggle_task(self, task_id: int, completed: Optional[bool] = None) -> int:
        """
        Set the completion state of one of the caller's tasks.

        With ``completed`` omitted the current value is read and flipped.
        Returns the number of rows changed (0 when the task does not exist or
        belongs to someone else).
        """
        if completed is None:
            current = self.store.get_task(task_id)
            if current is None or current["owner_identity"] != self.identity:
                return 0
            completed = not current["completed"]
        changes = self.store.update_task_completion(task_id, self.identity, completed)
        logger.debug("Toggle of task %s by %s changed %s row(s)", task_id, self.identity, changes)
        return changes

    def delete_task(self, task_id: int) -> int:
        changes = self.store.delete_task(task_id, self.identity)
        logger.debug("Delete of task %s by %s changed %s row(s)", task_id, self.identity, changes)
        return changes

    def set_display_name(self, name: Optional[str]) -> None:
        """
        Raises:
            ValidationFailed: name is missing or blank; nothing is stored.
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationFailed("displayName", "Display name must not be empty")
        self.store.upsert_display_name(self.identity, cleaned)
        logger.info("Display name of %s set", self.identity)

    def get_viewer_profile(self) -> IdentityEntity:
        record = self.store.get_identity_record(self.identity)
        display_name = record["display_name"] if record else None
        return {"identity": self.identity, "display_name": display_name or self.identity}


# PUBLIC_INTERFACE
def get_store(request: Request) -> TaskStore:
    """FastAPI dependency returning the store opened in the app lifespan."""
    return request.app.state.store


# PUBLIC_INTERFACE
def get_task_service(
    store: TaskStore = Depends(get_store),
    identity: str = Depends(get_identity),
) -> TaskService:
    """FastAPI dependency building a TaskService for the calling identity."""
    return TaskService(store, identity)
