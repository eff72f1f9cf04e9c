import dataclasses

import pytest
from fastapi.testclient import TestClient

from src.api.db import SQLRepository, create_db_engine
from src.api.main import create_app
from src.api.repositories import InMemoryRepository
from src.api.settings import get_settings

BACKENDS = ["memory", "sql"]


def make_settings(tmp_path, backend="memory", **overrides):
    """Environment settings with test-friendly defaults and an isolated SQLite file."""
    values = dict(
        persistence_backend=backend,
        database_url=f"sqlite:///{tmp_path / 'tasks.db'}",
        rate_limit_enabled=False,
        log_level="WARNING",
    )
    values.update(overrides)
    return dataclasses.replace(get_settings(), **values)


@pytest.fixture(params=BACKENDS)
def backend(request):
    return request.param


@pytest.fixture
def settings_factory(tmp_path):
    def factory(backend="memory", **overrides):
        return make_settings(tmp_path, backend, **overrides)

    return factory


@pytest.fixture
def settings(settings_factory, backend):
    return settings_factory(backend)


@pytest.fixture
def client(settings):
    # Entering the context runs the lifespan, which creates the repository.
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def repository(settings):
    if settings.persistence_backend == "memory":
        repo = InMemoryRepository()
    else:
        repo = SQLRepository(create_db_engine(settings))
    repo.initialize()
    yield repo
    repo.close()
