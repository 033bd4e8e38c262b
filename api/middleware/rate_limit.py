"""
Rate Limiting Middleware

Throttle login attempts and completion-service calls.
"""

from fastapi import FastAPI, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from config.settings import settings


def get_identifier(request: Request) -> str:
    """
    Get rate limit identifier from request.

    Uses the authenticated user ID if the auth dependency stored one,
    otherwise the client IP.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    return get_remote_address(request)


# Common limits
LIMIT_STANDARD = "100/minute"
LIMIT_AI = "10/minute"  # Each call may hit the completion service
LIMIT_AUTH = "20/minute"


limiter = Limiter(
    key_func=get_identifier,
    default_limits=[LIMIT_STANDARD],
    enabled=settings.rate_limit_enabled
)


def setup_rate_limiting(app: FastAPI):
    """
    Attach the limiter to the application.

    Per-route limits are applied with @limiter.limit(...); the route must
    accept a `request: Request` argument.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
