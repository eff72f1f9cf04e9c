from __future__ import annotations

import time

from fastapi import APIRouter, Request

from ..schemas import HealthResponse

router = APIRouter(prefix="/api", tags=["health"])


# PUBLIC_INTERFACE
@router.get("/health", response_model=HealthResponse, summary="Health Check")
def health_check(request: Request) -> HealthResponse:
    """
    Liveness probe. Does not touch the store.

    Returns:
        status 'ok' and the number of seconds since this application instance
        was built by create_app(), not since the process started.
    """
    started = request.app.state.started_at
    return HealthResponse(status="ok", uptime=round(time.monotonic() - started, 3))
