"""
Exception handlers that normalize every failure into the uniform error payload.

Register with register_exception_handlers(app).
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import TaskAPIError, ValidationError
from .validation import details_from_errors

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


def error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "statusCode": status_code}, headers=headers)


async def task_api_error_handler(request: Request, exc: TaskAPIError) -> JSONResponse:
    """
    Map the error taxonomy onto responses.

    500-class errors are logged with their cause and answered with a generic
    message; the cause never reaches the client.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc.__cause__ or exc,
        )
        return error_response(exc.status_code, INTERNAL_ERROR_MESSAGE)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return 400 with the same shape as ValidationError for errors FastAPI raises
    before a handler runs (e.g. a body that is not valid JSON).
    """
    error = ValidationError(details_from_errors(exc.errors(), from_request=True))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and other framework-level HTTP errors."""
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Sync: SlowAPIMiddleware calls this handler directly without awaiting it.
    logger.warning("Rate limit exceeded for %s: %s", request.client.host if request.client else "-", exc.detail)
    return error_response(429, "Too Many Requests")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, INTERNAL_ERROR_MESSAGE)


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Attach all error normalizing handlers to the app."""
    app.add_exception_handler(TaskAPIError, task_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
