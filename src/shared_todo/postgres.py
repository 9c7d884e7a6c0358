from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, List, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .db import row_to_task
from .errors import StoreUnavailable
from .models import COLS, IdentityEntity, TaskEntity
from .ordering import order_by_clause
from .repositories import Clock, TaskStore, now_ms

logger = logging.getLogger(__name__)


class PostgresTaskStore(TaskStore):
    """
    Client-server PostgreSQL store backed by a psycopg connection pool.

    The pool is created in open() and closed in close(); operations borrow a
    connection for a single statement, committed when the block exits.
    """

    backend_name = "postgres"

    def __init__(
        self,
        conninfo: str,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 10.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self._conninfo = conninfo
        self._min_size = min_size
        self._max_size = max(max_size, min_size)
        self._timeout = timeout
        self._clock = clock or now_ms
        self._pool: Optional[ConnectionPool] = None

    def open(self) -> None:
        if self._pool is not None:
            return
        pool = ConnectionPool(
            self._conninfo,
            min_size=self._min_size,
            max_size=self._max_size,
            timeout=self._timeout,
            kwargs={"row_factory": dict_row},
            open=False,
        )
        try:
            pool.open(wait=True, timeout=self._timeout)
        except psycopg.Error as e:
            pool.close()
            raise StoreUnavailable(f"cannot connect to postgres: {e}") from e
        self._pool = pool
        logger.info("Opened postgres pool (max_size=%s)", self._max_size)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
            logger.info("Closed postgres pool")

    @contextmanager
    def _conn(self) -> Generator[psycopg.Connection, None, None]:
        if self._pool is None:
            raise StoreUnavailable("postgres store is not open")
        try:
            with self._pool.connection() as conn:
                yield conn
        except psycopg.Error as e:
            raise StoreUnavailable(str(e)) from e

    def ensure_schema(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {COLS.table} (
                    {COLS.id} SERIAL PRIMARY KEY,
                    {COLS.owner} TEXT,
                    {COLS.text} TEXT,
                    {COLS.completed} BOOLEAN NOT NULL DEFAULT FALSE,
                    {COLS.last_updated} BIGINT
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
            found = conn.execute(
                """
                SELECT column_name FROM information_schema.columns
                WHERE table_schema = current_schema() AND table_name = %s AND column_name = %s
                """,
                (COLS.table, COLS.last_updated),
            ).fetchone()
            if not found:
                conn.execute(f"ALTER TABLE {COLS.table} ADD COLUMN IF NOT EXISTS {COLS.last_updated} BIGINT")
                logger.info("Added %s column to %s table", COLS.last_updated, COLS.table)
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{COLS.table}_{COLS.last_updated} "
                f"ON {COLS.table}({COLS.last_updated})"
            )

    def insert_task(self, owner: str, text: str) -> int:
        with self._conn() as conn:
            row = conn.execute(
                f"""
                INSERT INTO {COLS.table} ({COLS.owner}, {COLS.text}, {COLS.completed}, {COLS.last_updated})
                VALUES (%s, %s, FALSE, %s)
                RETURNING {COLS.id}
                """,
                (owner, text, self._clock()),
            ).fetchone()
        new_id = int(row[COLS.id])
        logger.debug("Inserted task %s for %s", new_id, owner)
        return new_id

    def get_task(self, task_id: int) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {COLS.table} WHERE {COLS.id} = %s", (task_id,)).fetchone()
            return row_to_task(row) if row else None

    def update_task_completion(self, task_id: int, owner: str, completed: bool) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                UPDATE {COLS.table}
                SET {COLS.completed} = %s, {COLS.last_updated} = %s
                WHERE {COLS.id} = %s AND {COLS.owner} = %s
                """,
                (bool(completed), self._clock(), task_id, owner),
            )
            return cur.rowcount

    def delete_task(self, task_id: int, owner: str) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {COLS.table} WHERE {COLS.id} = %s AND {COLS.owner} = %s",
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
                {order_by_clause("%s")}
                """,
                (viewer,),
            ).fetchall()
            return [row_to_task(r) for r in rows]

    def upsert_display_name(self, identity: str, name: str) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {COLS.users} ({COLS.ip}, {COLS.display_name}) VALUES (%s, %s)
                ON CONFLICT ({COLS.ip}) DO UPDATE SET {COLS.display_name} = EXCLUDED.{COLS.display_name}
                """,
                (identity, name),
            )

    def get_identity_record(self, identity: str) -> Optional[IdentityEntity]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT {COLS.ip}, {COLS.display_name} FROM {COLS.users} WHERE {COLS.ip} = %s",
                (identity,),
            ).fetchone()
            if row is None:
                return None
            return {"identity": row[COLS.ip], "display_name": row[COLS.display_name]}
