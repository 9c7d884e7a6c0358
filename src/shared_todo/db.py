from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Generator, List, Optional

from .errors import StoreUnavailable
from .models import COLS, IdentityEntity, TaskEntity
from .ordering import order_by_clause
from .repositories import Clock, TaskStore, now_ms

logger = logging.getLogger(__name__)


def row_to_task(row) -> TaskEntity:
    """Map a tasks row (optionally joined with users) to a TaskEntity."""
    keys = row.keys()
    last_updated = row[COLS.last_updated] if COLS.last_updated in keys else None
    return {
        "id": int(row[COLS.id]),
        "owner_identity": row[COLS.owner] or "",
        "text": row[COLS.text] or "",
        "completed": bool(row[COLS.completed]),
        "last_updated": int(last_updated) if last_updated is not None else None,
        "display_name": row[COLS.display_name] if COLS.display_name in keys else None,
    }


class SQLiteTaskStore(TaskStore):
    """
    File-embedded SQLite store implementing the TaskStore interface.

    A connection is opened per operation; each operation is one statement
    committed on its own.
    """

    backend_name = "sqlite"

    def __init__(self, db_path: str, clock: Optional[Clock] = None) -> None:
        self._db_path = db_path
        self._clock = clock or now_ms

    def open(self) -> None:
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        logger.info("Using sqlite task store at %s", self._db_path)

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot open sqlite database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailable(str(e)) from e
        finally:
            conn.close()

    def _column_names(self, conn: sqlite3.Connection) -> List[str]:
        rows = conn.execute(f"PRAGMA table_info({COLS.table})").fetchall()
        return [r["name"] for r in rows]

    def ensure_schema(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {COLS.table} (
                    {COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {COLS.owner} TEXT,
                    {COLS.text} TEXT,
                    {COLS.completed} INTEGER,
                    {COLS.last_updated} INTEGER
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {COLS.users} (
                    {COLS.ip} TEXT PRIMARY KEY,
                    {COLS.display_name} TEXT
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{COLS.table}_{COLS.owner} ON {COLS.table}({COLS.owner})"
            )

    def migrate(self) -> None:
        with self._conn() as conn:
            if COLS.last_updated not in self._column_names(conn):
                conn.execute(f"ALTER TABLE {COLS.table} ADD COLUMN {COLS.last_updated} INTEGER")
                logger.info("Added %s column to %s table", COLS.last_updated, COLS.table)
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{COLS.table}_{COLS.last_updated} "
                f"ON {COLS.table}({COLS.last_updated})"
            )

    def insert_task(self, owner: str, text: str) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {COLS.table} ({COLS.owner}, {COLS.text}, {COLS.completed}, {COLS.last_updated})
                VALUES (?, ?, 0, ?)
                """,
                (owner, text, self._clock()),
            )
            new_id = int(cur.lastrowid)
        logger.debug("Inserted task %s for %s", new_id, owner)
        return new_id

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {COLS.table} WHERE {COLS.id} = ?", (task_id,)).fetchone()
            return row_to_task(row) if row else None

    def update_task_completion(self, task_id: int, owner: str, completed: bool) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {COLS.table}
                SET {COLS.completed} = ?, {COLS.last_updated} = ?
                WHERE {COLS.id} = ? AND {COLS.owner} = ?
                """,
                (1 if completed else 0, self._clock(), task_id, owner),
            )
            return cur.rowcount

    def delete_task(self, task_id: int, owner: str) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {COLS.table} WHERE {COLS.id} = ? AND {COLS.owner} = ?",
                (task_id, owner),
            )
            return cur.rowcount

    def list_tasks(self, viewer: str) -> List[TaskEntity]:
        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT {COLS.table}.*, {COLS.users}.{COLS.display_name}
                FROM {COLS.table}
                LEFT JOIN {COLS.users} ON {COLS.table}.{COLS.owner} = {COLS.users}.{COLS.ip}
                {order_by_clause("?")}
                """,
                (viewer,),
            ).fetchall()
            return [row_to_task(r) for r in rows]

    def upsert_display_name(self, identity: str, name: str) -> None:
        with self._conn() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {COLS.users} ({COLS.ip}, {COLS.display_name}) VALUES (?, ?)",
                (identity, name),
            )

    def get_identity_record(self, identity: str) -> Optional[IdentityEntity]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT {COLS.ip}, {COLS.display_name} FROM {COLS.users} WHERE {COLS.ip} = ?",
                (identity,),
            ).fetchone()
            if row is None:
                return None
            return {"identity": row[COLS.ip], "display_name": row[COLS.display_name]}
