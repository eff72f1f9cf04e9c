from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from .error_handlers import register_exception_handlers
from .limiter import build_limiter
from .logging_setup import get_logger, setup_logging
from .middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from .repositories import build_repository
from .routers import health as health_router
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

logger = get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "CRUD operations for Tasks with filtering, sorting, pagination and completion toggling.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Create the repository (and its connection pool) once at startup, verify the
    store is reachable, and dispose of it at shutdown after in-flight requests
    have drained.
    """
    settings: Settings = app.state.settings
    repository = build_repository(settings)
    repository.initialize()
    app.state.repository = repository
    logger.info("Task backend started (backend=%s)", settings.persistence_backend)
    try:
        yield
    finally:
        repository.close()
        logger.info("Task backend stopped")


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Explicit settings; read from the environment when omitted.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Task Backend",
        description="Backend API service for managing tasks backed by a relational store.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.limiter = build_limiter(settings)

    register_exception_handlers(app)

    # Added innermost first: the access log wraps everything else.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router.router)
    app.include_router(tasks_router.router)
    return app


app = create_app()
