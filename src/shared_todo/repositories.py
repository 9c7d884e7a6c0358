from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from threading import RLock
from typing import Callable, Dict, List, Optional

from .errors import StoreUnavailable
from .models import IdentityEntity, TaskEntity
from .ordering import order_for_viewer
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time as Unix epoch milliseconds."""
    return int(time.time() * 1000)


# PUBLIC_INTERFACE
class TaskStore(ABC):
    """
    Abstract storage contract for tasks and identities.

    Mutations take the caller's identity and apply only to rows owned by it,
    in the same statement that performs the change. A mismatch is reported as
    zero affected rows, never as an error.
    """

    backend_name: str = "abstract"

    def open(self) -> None:
        """Acquire process-scoped resources. Called once before serving."""

    def close(self) -> None:
        """Release resources acquired by open()."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create the tasks and users tables if absent. Idempotent."""

    @abstractmethod
    def migrate(self) -> None:
        """Add columns missing from older schemas without losing rows. Idempotent."""

    @abstractmethod
    def insert_task(self, owner: str, text: str) -> int:
        """Insert an uncompleted task owned by ``owner`` and return its id."""

    @abstractmethod
    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        """Return a task by id (display_name is None), or None if not found."""

    @abstractmethod
    def update_task_completion(self, task_id: int, owner: str, completed: bool) -> int:
        """Set completed and last_updated where id and owner both match. Return rows affected."""

    @abstractmethod
    def delete_task(self, task_id: int, owner: str) -> int:
        """Delete where id and owner both match. Return rows affected."""

    @abstractmethod
    def list_tasks(self, viewer: str) -> List[TaskEntity]:
        """Return every task joined with its owner's display name, viewer's tasks first."""

    @abstractmethod
    def upsert_display_name(self, identity: str, name: str) -> None:
        """Insert or replace the display name of ``identity``."""

    @abstractmethod
    def get_identity_record(self, identity: str) -> Optional[IdentityEntity]:
        """Return the stored identity row, or None."""


class InMemoryTaskStore(TaskStore):
    """
    Thread-safe in-memory store suitable for testing and throwaway runs.
    """

    backend_name = "memory"

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._lock = RLock()
        self._tasks: Dict[int, TaskEntity] = {}
        self._names: Dict[str, Optional[str]] = {}
        self._next_id = 1
        self._clock = clock or now_ms

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def ensure_schema(self) -> None:
        return None

    def migrate(self) -> None:
        return None

    def insert_task(self, owner: str, text: str) -> int:
        with self._lock:
            task: TaskEntity = {
                "id": self._allocate_id(),
                "owner_identity": owner,
                "text": text,
                "completed": False,
                "last_updated": self._clock(),
                "display_name": None,
            }
            self._tasks[task["id"]] = task
            return task["id"]

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            task = self._tasks.get(task_id)
            return None if task is None else task.copy()

    def update_task_completion(self, task_id: int, owner: str, completed: bool) -> int:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task["owner_identity"] != owner:
                return 0
            task["completed"] = bool(completed)
            task["last_updated"] = self._clock()
            return 1

    def delete_task(self, task_id: int, owner: str) -> int:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task["owner_identity"] != owner:
                return 0
            del self._tasks[task_id]
            return 1

    def list_tasks(self, viewer: str) -> List[TaskEntity]:
        with self._lock:
            rows = []
            for task in self._tasks.values():
                row = task.copy()
                row["display_name"] = self._names.get(task["owner_identity"])
                rows.append(row)
        return order_for_viewer(rows, viewer)

    def upsert_display_name(self, identity: str, name: str) -> None:
        with self._lock:
            self._names[identity] = name

    def get_identity_record(self, identity: str) -> Optional[IdentityEntity]:
        with self._lock:
            if identity not in self._names:
                return None
            return {"identity": identity, "display_name": self._names[identity]}


# PUBLIC_INTERFACE
def create_store(settings: Optional[Settings] = None) -> TaskStore:
    """
    Factory returning the store configured in settings.
    - memory: InMemoryTaskStore
    - sqlite: SQLiteTaskStore (embedded file)
    - postgres: PostgresTaskStore (requires POSTGRES_URL)

    The returned store is not opened yet; call open(), ensure_schema() and
    migrate() before use.
    """
    settings = settings or get_settings()
    backend = settings.persistence_backend
    if backend == "postgres":
        if not settings.postgres_url:
            raise StoreUnavailable("POSTGRES_URL must be set for the postgres backend")
        from .postgres import PostgresTaskStore

        return PostgresTaskStore(settings.postgres_url, max_size=settings.postgres_pool_max_size)
    if backend == "sqlite":
        from .db import SQLiteTaskStore

        return SQLiteTaskStore(settings.sqlite_db_path)
    logger.info("Using in-memory task store; data is lost on shutdown")
    return InMemoryTaskStore()
