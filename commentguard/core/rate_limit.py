"""
Rate limiting configuration using slowapi.

Keyed by the calling integration's X-Client-ID header when present,
otherwise by client IP. Backed by Redis so limits hold across workers.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from commentguard.core.config import get_settings


def _get_rate_limit_key(request: Request) -> str:
    client_id = request.headers.get("X-Client-ID")
    if client_id:
        return f"client:{client_id}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


limiter = Limiter(
    key_func=_get_rate_limit_key,
    default_limits=["120/minute"],
    enabled=get_settings().rate_limit_enabled,
    storage_uri=get_settings().redis_url,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded errors with a standardized response."""
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
    )
