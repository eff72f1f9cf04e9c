"""Raw ASGI middleware: security headers, request body size limit, access log.

Raw ASGI (no BaseHTTPMiddleware) keeps streaming and background tasks intact.
"""
from __future__ import annotations

import json
import time
from typing import Callable, Dict, List, Optional

from .logging_setup import get_logger

access_logger = get_logger("src.api.access")

DEFAULT_SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def _get_header(scope: dict, name: str) -> Optional[str]:
    """Return first header value for name (case-insensitive)."""
    want = name.lower().encode()
    for k, v in scope.get("headers", []):
        if k.lower() == want:
            return v.decode("latin-1")
    return None


def SecurityHeadersMiddleware(app: Callable, headers: Optional[Dict[str, str]] = None) -> Callable:
    """Set security headers on all responses unless the app already set them."""
    resolved = headers if headers is not None else DEFAULT_SECURITY_HEADERS.copy()
    header_list = [(k.lower().encode(), v.encode()) for k, v in resolved.items()]

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        async def send_wrapper(message: dict) -> None:
            if message["type"] == "http.response.start":
                response_headers = list(message.get("headers", []))
                seen = {h[0].lower() for h in response_headers}
                for name_b, value_b in header_list:
                    if name_b not in seen:
                        response_headers.append((name_b, value_b))
                message["headers"] = response_headers
            await send(message)

        await app(scope, receive, send_wrapper)

    return asgi_app


async def _send_413(send: Callable) -> None:
    body = json.dumps({"error": "Payload Too Large", "statusCode": 413}).encode()
    await send({
        "type": "http.response.start",
        "status": 413,
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
    })
    await send({"type": "http.response.body", "body": body, "more_body": False})


def RequestSizeLimitMiddleware(app: Callable, max_bytes: int) -> Callable:
    """Reject requests whose body exceeds max_bytes with 413.

    A declared Content-Length is checked up front. Bodies without one (chunked
    transfer) are read and counted first, then replayed to the app.
    """

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        content_length = _get_header(scope, "content-length")
        if content_length is not None:
            if content_length.strip().isdigit() and int(content_length) > max_bytes:
                await _send_413(send)
                return
            await app(scope, receive, send)
            return

        chunks: List[bytes] = []
        total = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            if message["type"] != "http.request":
                continue
            body = message.get("body", b"")
            total += len(body)
            if total > max_bytes:
                await _send_413(send)
                return
            chunks.append(body)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        delivered = False

        async def replay_receive() -> dict:
            nonlocal delivered
            if delivered:
                # Body already consumed; later reads wait on the real connection.
                return await receive()
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}

        await app(scope, replay_receive, send)

    return asgi_app


def RequestLoggingMiddleware(app: Callable) -> Callable:
    """Log method, path, status and duration of every HTTP request."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        started = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: dict) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            client = scope.get("client") or ("-", 0)
            access_logger.info(
                '%s "%s %s" %d %.1fms',
                client[0],
                scope.get("method", "-"),
                scope.get("path", "-"),
                status_code,
                elapsed_ms,
            )

    return asgi_app
