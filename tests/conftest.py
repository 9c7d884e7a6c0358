import os
import sqlite3

import pytest
from fastapi.testclient import TestClient

from shared_todo.db import SQLiteTaskStore
from shared_todo.main import create_app
from shared_todo.repositories import InMemoryTaskStore
from shared_todo.settings import Settings


class StepClock:
    """Deterministic clock: every call is one millisecond after the previous one."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def make_settings(**overrides) -> Settings:
    values = dict(
        persistence_backend="memory",
        sqlite_db_path="./data/todo.db",
        postgres_url=None,
        postgres_pool_max_size=10,
        trust_proxy=True,
        cors_allow_origins=["*"],
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


def as_ip(ip: str) -> dict:
    """Request headers that make the caller appear as ``ip``."""
    return {"X-Forwarded-For": ip}


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path, clock):
    if request.param == "memory":
        s = InMemoryTaskStore(clock=clock)
    else:
        s = SQLiteTaskStore(str(tmp_path / "db" / "todo.db"), clock=clock)
    s.open()
    s.ensure_schema()
    s.migrate()
    yield s
    s.close()


@pytest.fixture
def sqlite_path(tmp_path):
    return str(tmp_path / "todo.db")


@pytest.fixture
def legacy_sqlite_db(sqlite_path):
    """A tasks table from before last_updated existed, with one row in it."""
    conn = sqlite3.connect(sqlite_path)
    conn.execute(
        "CREATE TABLE tasks (id INTEGER PRIMARY KEY AUTOINCREMENT, user_ip TEXT, text TEXT, completed INTEGER)"
    )
    conn.execute("INSERT INTO tasks (user_ip, text, completed) VALUES ('9.9.9.9', 'old task', 1)")
    conn.commit()
    conn.close()
    return sqlite_path


@pytest.fixture
def client(clock):
    app = create_app(settings=make_settings(), store=InMemoryTaskStore(clock=clock))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sqlite_client(sqlite_path, clock):
    settings = make_settings(persistence_backend="sqlite", sqlite_db_path=sqlite_path)
    app = create_app(settings=settings, store=SQLiteTaskStore(sqlite_path, clock=clock))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def postgres_url():
    url = os.getenv("TEST_POSTGRES_URL")
    if not url:
        pytest.skip("TEST_POSTGRES_URL not set")
    return url
