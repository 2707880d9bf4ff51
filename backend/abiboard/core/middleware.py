"""
AbiBoard - HTTP Middleware
"""

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from abiboard.core.exceptions import AbiBoardError, error_response
from abiboard.core.logging_config import generate_request_id, logger, set_request_id, set_user_id

QUIET_PATHS = {"/health", "/api/v1/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}
SLOW_REQUEST_MS = 2000


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request id, timing headers and one log line per request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        path = request.url.path
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.log_error_with_context(exc, context=f"{request.method} {path}")
            raise
        finally:
            duration_ms = (time.perf_counter() - started) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"

        # Image downloads come in bursts from the overview pages
        if path not in QUIET_PATHS and not path.startswith("/uploads/"):
            logger.log_request(request.method, path, response.status_code, duration_ms)
            if duration_ms > SLOW_REQUEST_MS:
                logger.warning(f"Slow request: {request.method} {path} ({duration_ms:.0f}ms)")

        set_request_id("")
        set_user_id("")
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "same-origin")
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects bodies above ``max_size`` by their Content-Length"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > self.max_size:
            logger.warning(f"Rejected {request.method} {request.url.path}: body of {length} bytes")
            error = AbiBoardError(
                "Die Anfrage ist zu groß.",
                code="REQUEST_TOO_LARGE",
                details={"max_size": self.max_size},
            )
            return JSONResponse(status_code=413, content=error_response(error))

        return await call_next(request)
