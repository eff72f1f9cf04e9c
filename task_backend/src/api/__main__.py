"""
Run the API with uvicorn.

Usage:
    python -m src.api

On SIGINT/SIGTERM uvicorn stops accepting connections and gives in-flight
requests SHUTDOWN_GRACE_PERIOD seconds before the lifespan disposes of the
connection pool.
"""
from __future__ import annotations

import uvicorn

from .main import create_app
from .settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_grace_period,
    )


if __name__ == "__main__":
    main()
