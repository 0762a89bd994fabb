"""
Request logging middleware.

Logs one structured event per request with method, path, status and duration,
and adds an X-Response-Time header. 5xx responses log at error level, 4xx at
warning, everything else at info.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.logging_config import get_logger

logger = get_logger(__name__)

# Probed constantly by orchestrators; not worth a log line each
EXCLUDED_PATHS = frozenset({"/health", "/favicon.ico"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if path in EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        fields = {
            "method": request.method,
            "path": path,
            "status": response.status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
        }
        if response.status_code >= 500:
            logger.error("HTTP request error", **fields)
        elif response.status_code >= 400:
            logger.warning("HTTP request warning", **fields)
        else:
            logger.info("HTTP request", **fields)

        return response


__all__ = ["RequestLoggingMiddleware"]
