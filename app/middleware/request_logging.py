"""Request logging middleware with request-id correlation."""

import time
import uuid

import structlog
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.logging import request_id_var

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware:
    """
    Pure ASGI middleware logging one line per HTTP request.

    - Reuses the caller's X-Request-ID or generates one
    - Exposes it to every log line through a context variable
    - Echoes it on the response
    - Logs method, path, status code and duration

    Usage:
        app.add_middleware(RequestLoggingMiddleware)
    """

    def __init__(self, app: ASGIApp, skip_paths: tuple[str, ...] = ("/health",)) -> None:
        self.app = app
        self.skip_paths = skip_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._incoming_request_id(scope) or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = MutableHeaders(scope=message)
                headers[REQUEST_ID_HEADER] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            path = scope.get("path", "")
            if not path.endswith(self.skip_paths):
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                log = logger.warning if status_code >= 500 else logger.info
                log(
                    "http.request",
                    method=scope.get("method"),
                    path=path,
                    status_code=status_code,
                    duration_ms=duration_ms,
                    client=scope["client"][0] if scope.get("client") else None,
                )
            request_id_var.reset(token)

    @staticmethod
    def _incoming_request_id(scope: Scope) -> str | None:
        for name, value in scope.get("headers", []):
            if name == b"x-request-id":
                candidate = value.decode("latin-1").strip()
                # Bound what a caller can inject into our logs
                if candidate and len(candidate) <= 128 and candidate.isprintable():
                    return candidate
        return None
