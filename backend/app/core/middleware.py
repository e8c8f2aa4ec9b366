"""
SocietySync - HTTP Middleware
Request tracing, access logging and security headers
"""

import re
import time
from typing import Callable, Dict, FrozenSet
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.core.logging_config import (
    logger,
    set_request_id,
    set_user_id,
    set_society_id,
    generate_request_id,
)


# Probes and docs are not worth an access log line
QUIET_PATHS: FrozenSet[str] = frozenset({
    "/",
    "/health",
    "/api/v1/health/live",
    "/favicon.ico",
    "/docs",
    "/redoc",
    "/openapi.json",
})

_SOCIETY_PATH = re.compile(r"/societies/(?P<society_id>[0-9a-fA-F-]{8,})")

SECURITY_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cache-Control": "no-store",
}


def should_skip_logging(path: str) -> bool:
    return path in QUIET_PATHS


def extract_society_id(path: str) -> str:
    """Society id from /societies/{id}/... routes, "" elsewhere"""
    match = _SOCIETY_PATH.search(path)
    return match.group("society_id") if match else ""


def _level_for(status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "info"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id (client supplied X-Request-ID or a fresh one) and the
    society id to the logging context, then writes one access line per request.
    Client errors log at WARNING, server errors at ERROR.
    """

    def __init__(self, app: ASGIApp, slow_request_ms: float = 1000):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        path = request.url.path
        set_request_id(request_id)
        set_society_id(extract_society_id(path))

        quiet = should_skip_logging(path)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"✗ {request.method} {path} raised {type(exc).__name__} after {elapsed_ms:.2f}ms",
                exc_info=True,
                extra={
                    "event_type": "http_request_error",
                    "http_method": request.method,
                    "http_path": path,
                    "duration_ms": elapsed_ms,
                    "error_type": type(exc).__name__,
                }
            )
            raise
        else:
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

            if not quiet:
                getattr(logger, _level_for(response.status_code))(
                    f"{request.method} {path} - {response.status_code} ({elapsed_ms:.2f}ms)",
                    extra={
                        "event_type": "http_request",
                        "http_method": request.method,
                        "http_path": path,
                        "http_status": response.status_code,
                        "duration_ms": elapsed_ms,
                        "client_ip": request.client.host if request.client else "unknown",
                    }
                )
                if elapsed_ms > self.slow_request_ms:
                    logger.warning(f"Slow request: {request.method} {path} took {elapsed_ms:.2f}ms")

            return response
        finally:
            set_request_id("")
            set_user_id("")
            set_society_id("")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds SECURITY_HEADERS to every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


__all__ = [
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "should_skip_logging",
    "extract_society_id",
    "QUIET_PATHS",
    "SECURITY_HEADERS",
]
