from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'sql' (default) or 'memory'
    - DATABASE_URL: SQLAlchemy database URL. Default 'sqlite:///./data/tasks.db'
    - DB_POOL_SIZE: number of pooled connections (default 10)
    - DB_MAX_OVERFLOW: connections allowed beyond the pool size (default 0)
    - DB_POOL_TIMEOUT: seconds to wait for a free connection before failing (default 5)
    - DB_POOL_RECYCLE: seconds after which a pooled connection is recycled (default 1800)
    - DB_STATEMENT_TIMEOUT_MS: per-statement timeout sent to PostgreSQL (default 30000)
    - DB_ECHO: 'true' to log every SQL statement (default false)
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - RATE_LIMIT_ENABLED: 'false' to disable request rate limiting (default true)
    - RATE_LIMIT: limit string applied per client address (default '100/15minutes')
    - MAX_BODY_BYTES: largest accepted request body (default 1 MiB)
    - LOG_LEVEL: root log level name (default INFO)
    - HOST / PORT: server bind address (default 0.0.0.0:4000)
    - SHUTDOWN_GRACE_PERIOD: seconds in-flight requests get on shutdown (default 10)
    """

    persistence_backend: str
    database_url: str
    db_pool_size: int
    db_max_overflow: int
    db_pool_timeout: float
    db_pool_recycle: int
    db_statement_timeout_ms: Optional[int]
    db_echo: bool
    cors_allow_origins: List[str]
    rate_limit_enabled: bool
    rate_limit: str
    max_body_bytes: int
    log_level: str
    host: str
    port: int
    shutdown_grace_period: int


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


def _parse_int(value: str, default: int, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


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
    backend = _get_env("PERSISTENCE_BACKEND", "sql").strip().lower()
    if backend not in {"memory", "sql"}:
        backend = "sql"

    statement_timeout = _parse_int(_get_env("DB_STATEMENT_TIMEOUT_MS", "30000"), 30000)

    return Settings(
        persistence_backend=backend,
        database_url=_get_env("DATABASE_URL", "sqlite:///./data/tasks.db").strip(),
        db_pool_size=_parse_int(_get_env("DB_POOL_SIZE", "10"), 10, minimum=1),
        db_max_overflow=_parse_int(_get_env("DB_MAX_OVERFLOW", "0"), 0),
        db_pool_timeout=float(_parse_int(_get_env("DB_POOL_TIMEOUT", "5"), 5, minimum=1)),
        db_pool_recycle=_parse_int(_get_env("DB_POOL_RECYCLE", "1800"), 1800),
        # 0 disables the server-side timeout
        db_statement_timeout_ms=statement_timeout or None,
        db_echo=_parse_bool(_get_env("DB_ECHO", "false")),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        rate_limit_enabled=_parse_bool(_get_env("RATE_LIMIT_ENABLED", "true"), True),
        rate_limit=_get_env("RATE_LIMIT", "100/15minutes").strip(),
        max_body_bytes=_parse_int(_get_env("MAX_BODY_BYTES", str(1024 * 1024)), 1024 * 1024, minimum=1),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        host=_get_env("HOST", "0.0.0.0").strip(),
        port=_parse_int(_get_env("PORT", "4000"), 4000, minimum=1),
        shutdown_grace_period=_parse_int(_get_env("SHUTDOWN_GRACE_PERIOD", "10"), 10),
    )
