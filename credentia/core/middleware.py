"""
Core middleware components: request logging, security headers and CORS.
"""

import time
import uuid
from typing import Callable, List

from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logger import get_logger

logger = get_logger("middleware")


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status and response time of every request and tags
    the response with a short request id.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"[{request_id}] {method} {path} - Client: {client_ip}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.perf_counter() - start_time
            logger.error(f"[{request_id}] {method} {path} - Error: {e} - Time: {process_time:.4f}s")
            raise

        process_time = time.perf_counter() - start_time
        logger.info(
            f"[{request_id}] {method} {path} - "
            f"Status: {response.status_code} - Time: {process_time:.4f}s"
        )
        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        response.headers["X-Request-ID"] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def setup_cors_middleware(app, origins: List[str]):
    """
    Allow the builder and issuer front ends to call the API.

    Args:
        app: FastAPI application instance
        origins: Allowed origins; ["*"] allows any
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )


def setup_middleware_stack(app, origins: List[str]):
    """
    Setup the complete middleware stack for the application.
    Middleware added last wraps outermost.
    """
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    setup_cors_middleware(app, origins)
