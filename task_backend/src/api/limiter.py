"""Rate limiter for SlowAPI.

One limiter per app, keyed on the client address, with the configured default
limit applied to every route through SlowAPIMiddleware.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from .settings import Settings


def build_limiter(settings: Settings) -> Limiter:
    """Return a Limiter using in-process storage and settings.rate_limit as the default."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
