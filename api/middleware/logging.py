"""
Logging Middleware

Request/response logging with a per-request correlation ID.
"""

import logging
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("rfp_manager.api.requests")

# Probes hit these constantly; only failures are logged
QUIET_PATHS = {"/health", "/"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with method, path, status and duration.

    A caller-supplied X-Correlation-ID header is reused, otherwise a short
    one is generated. Both it and the response time are echoed back as headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex[:8]
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        quiet = request.url.path in QUIET_PATHS

        if not quiet:
            client_ip = request.client.host if request.client else "unknown"
            logger.info(
                f"[{correlation_id}] {request.method} {request.url.path} from {client_ip}"
            )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{correlation_id}] {request.method} {request.url.path} "
                f"ERROR: {str(e)} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"

        if response.status_code >= 400 or not quiet:
            log_level = logging.INFO if response.status_code < 400 else logging.WARNING
            logger.log(
                log_level,
                f"[{correlation_id}] {request.method} {request.url.path} "
                f"-> {response.status_code} ({duration_ms:.2f}ms)"
            )

        return response


def get_correlation_id(request: Request) -> str:
    """Get the correlation ID from the request state."""
    return getattr(request.state, "correlation_id", "unknown")
