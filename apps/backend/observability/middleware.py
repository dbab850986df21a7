"""
Request correlation middleware.

Reuses an inbound ``X-Request-ID`` / ``X-Correlation-ID`` header or mints a
new ID, binds it for every log line of the request, and echoes it back.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import get_logger, correlation_id_context

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 2.0


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, enable_request_logging: bool = False):
        super().__init__(app)
        self.enable_request_logging = enable_request_logging

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID")

        with correlation_id_context(correlation_id) as req_id:
            request.state.correlation_id = req_id
            start_time = time.time()
            response = await call_next(request)
            duration = time.time() - start_time
            response.headers["X-Request-ID"] = req_id

            if request.url.path.startswith("/health"):
                return response
            if self.enable_request_logging:
                logger.info(
                    "Request completed",
                    extra={
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "duration_seconds": round(duration, 3),
                    },
                )
            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(
                    "Slow request detected",
                    extra={"method": request.method, "path": request.url.path, "duration_seconds": round(duration, 3)},
                )
            return response
