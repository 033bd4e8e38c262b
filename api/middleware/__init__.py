"""
API Middleware Package

Error handling, rate limiting and request logging.
"""

from api.middleware.error_handler import (
    setup_error_handlers,
    APIError,
    NotFoundError,
    ValidationError,
    ConflictError,
    AuthenticationError,
    AuthorizationError,
)
from api.middleware.logging import LoggingMiddleware
from api.middleware.rate_limit import setup_rate_limiting, limiter

__all__ = [
    "setup_error_handlers",
    "APIError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "LoggingMiddleware",
    "setup_rate_limiting",
    "limiter"
]
