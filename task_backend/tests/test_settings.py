import pytest

from src.api.settings import get_settings

ENV_VARS = [
    "PERSISTENCE_BACKEND",
    "DATABASE_URL",
    "DB_POOL_SIZE",
    "DB_POOL_TIMEOUT",
    "DB_STATEMENT_TIMEOUT_MS",
    "CORS_ALLOW_ORIGINS",
    "RATE_LIMIT_ENABLED",
    "RATE_LIMIT",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    s = get_settings()
    assert s.persistence_backend == "sql"
    assert s.database_url == "sqlite:///./data/tasks.db"
    assert s.db_pool_size == 10
    assert s.db_pool_timeout == 5.0
    assert s.db_statement_timeout_ms == 30000
    assert s.cors_allow_origins == ["*"]
    assert s.rate_limit_enabled is True
    assert s.rate_limit == "100/15minutes"


def test_overrides(clean_env):
    clean_env.setenv("PERSISTENCE_BACKEND", "MEMORY")
    clean_env.setenv("DB_POOL_SIZE", "3")
    clean_env.setenv("DB_STATEMENT_TIMEOUT_MS", "0")
    clean_env.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")
    clean_env.setenv("RATE_LIMIT_ENABLED", "off")
    s = get_settings()
    assert s.persistence_backend == "memory"
    assert s.db_pool_size == 3
    assert s.db_statement_timeout_ms is None
    assert s.cors_allow_origins == ["https://a.example", "https://b.example"]
    assert s.rate_limit_enabled is False


def test_invalid_values_fall_back(clean_env):
    clean_env.setenv("PERSISTENCE_BACKEND", "redis")
    clean_env.setenv("DB_POOL_SIZE", "zero")
    clean_env.setenv("DB_POOL_TIMEOUT", "-1")
    s = get_settings()
    assert s.persistence_backend == "sql"
    assert s.db_pool_size == 10
    assert s.db_pool_timeout == 5.0
