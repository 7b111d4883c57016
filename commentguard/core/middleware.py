"""
Request correlation for FastAPI and Celery.

The correlation ID lives in a ContextVar so the logging filter can read it
from any sync or async context. Celery tasks bind the comment ID instead.
"""

import logging
import uuid
from contextvars import ContextVar, Token

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID from context."""
    return correlation_id_var.get()


def bind_correlation_id(value: str) -> Token:
    """Bind a correlation ID outside a request (e.g. inside a Celery task)."""
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token) -> None:
    correlation_id_var.reset(token)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Extracts or generates a correlation ID for each request.

    Read from X-Request-ID / X-Correlation-ID, otherwise a new UUID.
    Stored on request.state and in the ContextVar, echoed as X-Request-ID.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = (
            request.headers.get("X-Request-ID")
            or request.headers.get("X-Correlation-ID")
            or str(uuid.uuid4())
        )

        request.state.correlation_id = correlation_id
        token = correlation_id_var.set(correlation_id)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = correlation_id
            return response
        finally:
            correlation_id_var.reset(token)
