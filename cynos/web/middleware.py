"""Per-request middleware: cookie parsing and request/response logging.

Both stages are plain ASGI middleware so they see every HTTP request,
including ones that end in an unhandled exception.

Usage:
    from cynos.web.middleware import install_middleware

    install_middleware(app, logger=get_logger(__name__, context="HTTP"))
"""

from __future__ import annotations

import re
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI
from starlette.datastructures import Headers, MutableHeaders
from starlette.requests import cookie_parser
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from cynos.observability.logging import clear_correlation_id, set_correlation_id
from cynos.observability.metrics import record_request

__all__ = [
    "CookieParserMiddleware",
    "RequestLoggingMiddleware",
    "install_middleware",
    "parse_cookie_header",
]


REQUEST_ID_HEADER = "X-Request-ID"

# RFC 6265 cookie-name token characters
_COOKIE_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def parse_cookie_header(header: Optional[str]) -> Dict[str, str]:
    """Parse a ``Cookie`` header into a name -> value mapping.

    Pairs that cannot be parsed (no name, illegal name characters) are
    dropped; this function never raises.
    """
    if not header:
        return {}
    return {
        name: value
        for name, value in cookie_parser(header).items()
        if _COOKIE_NAME.match(name)
    }


class CookieParserMiddleware:
    """Expose parsed cookies as ``request.state.cookies``."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            headers = Headers(scope=scope)
            scope.setdefault("state", {})["cookies"] = parse_cookie_header(
                headers.get("cookie")
            )
        await self.app(scope, receive, send)


class RequestLoggingMiddleware:
    """Log every request on arrival and its response on completion.

    The response entry is emitted exactly once per request, from a
    ``finally`` block, so handler errors are logged with status 500.
    """

    def __init__(self, app: ASGIApp, logger: Any) -> None:
        self.app = app
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        method = scope["method"]
        url = _request_url(scope)
        client = scope.get("client")

        incoming_id = headers.get(REQUEST_ID_HEADER)
        request_id = set_correlation_id(
            incoming_id if incoming_id and _REQUEST_ID.match(incoming_id) else None
        )

        start_time = time.perf_counter()
        self.logger.debug(
            "http_request_received",
            method=method,
            url=url,
            ip=client[0] if client else None,
            user_agent=headers.get("user-agent"),
        )

        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message).append(REQUEST_ID_HEADER, request_id)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = max(time.perf_counter() - start_time, 0.0)
            self.logger.debug(
                "http_response_sent",
                method=method,
                url=url,
                status_code=status_code,
                duration_ms=round(duration * 1000, 3),
            )
            record_request(method, status_code, duration)
            clear_correlation_id()


def _request_url(scope: Scope) -> str:
    """Path plus query string, as the client requested it."""
    url = scope.get("root_path", "") + scope["path"]
    query = scope.get("query_string", b"")
    if query:
        url = f"{url}?{query.decode('latin-1')}"
    return url


def install_middleware(app: FastAPI, logger: Any) -> None:
    """Attach the cookie parser and request logger.

    Starlette wraps middleware in reverse registration order, so the
    logger is registered first to make the cookie parser run before it.
    """
    app.add_middleware(RequestLoggingMiddleware, logger=logger)
    app.add_middleware(CookieParserMiddleware)
