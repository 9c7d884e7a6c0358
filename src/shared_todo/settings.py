from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

BACKENDS = {"memory", "sqlite", "postgres"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory', 'sqlite' (default) or 'postgres'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/todo.db'
    - POSTGRES_URL: libpq connection string, required for the postgres backend
    - POSTGRES_POOL_MAX_SIZE: upper bound of the postgres connection pool (default 10)
    - TRUST_PROXY: 'true' (default) to take the caller address from X-Forwarded-For / Forwarded
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: logging level name (default INFO)
    - HOST / PORT: listen address of the standalone server (default 0.0.0.0:3000)
    """

    persistence_backend: str
    sqlite_db_path: str
    postgres_url: Optional[str]
    postgres_pool_max_size: int
    trust_proxy: bool
    cors_allow_origins: List[str]
    log_level: str
    host: str = "0.0.0.0"
    port: int = 3000


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "sqlite").strip().lower()
    if backend not in BACKENDS:
        logger.warning("Unsupported PERSISTENCE_BACKEND %r, using sqlite", backend)
        backend = "sqlite"

    postgres_url = os.getenv("POSTGRES_URL") or None

    return Settings(
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todo.db").strip(),
        postgres_url=postgres_url.strip() if postgres_url else None,
        postgres_pool_max_size=_parse_int(_get_env("POSTGRES_POOL_MAX_SIZE", "10"), 10),
        trust_proxy=_parse_bool(_get_env("TRUST_PROXY", "true"), True),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "3000"), 3000),
    )
