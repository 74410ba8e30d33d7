"""Request logging middleware.

Assigns an X-Request-Id response header when the app did not set one and
logs one line per HTTP request: request id, method, path, status and
duration.
"""

from __future__ import annotations

import logging
import time
import uuid

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        started = time.perf_counter()
        status = {"code": 500}

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                status["code"] = int(message.get("status") or 0)
                headers = list(message.get("headers") or [])
                header_bytes = self.header_name.lower().encode("latin-1")
                if not any(bytes(k).lower() == header_bytes for k, _ in headers):
                    headers.append((self.header_name.encode("latin-1"), request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.info(
                "request id=%s %s %s status=%s %.1fms",
                request_id,
                scope.get("method", ""),
                scope.get("path", ""),
                status["code"],
                elapsed_ms,
            )


__all__ = ["RequestLogMiddleware"]
