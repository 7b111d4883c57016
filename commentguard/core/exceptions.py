"""
Global exception handlers for FastAPI.

Maps domain exceptions to HTTP responses so routers stay free of
try/except. Register with register_exception_handlers(app).
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def error_response(status_code: int, detail: str, code: Optional[str] = None) -> JSONResponse:
    """Build a standardized error JSON response."""
    content: dict = {"detail": detail}
    if code:
        content["code"] = code
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all domain exception handlers on the FastAPI app."""
    from commentguard.models.moderation import (
        ClassificationProviderError,
        EmbeddingProviderError,
        OwnerNotResolvedError,
    )
    from commentguard.models.suspicious_account import SuspiciousAccountNotFoundError

    # --- Suspicious account handlers ---

    @app.exception_handler(SuspiciousAccountNotFoundError)
    async def _suspicious_account_not_found(
        request: Request, exc: SuspiciousAccountNotFoundError
    ) -> JSONResponse:
        return error_response(404, "Suspicious account not found.", "SUSPICIOUS_ACCOUNT_NOT_FOUND")

    # --- Moderation handlers ---

    @app.exception_handler(OwnerNotResolvedError)
    async def _owner_not_resolved(request: Request, exc: OwnerNotResolvedError) -> JSONResponse:
        return error_response(
            422,
            "No owning user or client could be resolved for this account.",
            "OWNER_NOT_RESOLVED",
        )

    # --- Provider handlers ---

    @app.exception_handler(ClassificationProviderError)
    async def _classification_provider(
        request: Request, exc: ClassificationProviderError
    ) -> JSONResponse:
        logger.error("Classification provider error: %s", exc)
        return error_response(502, "Classification provider error.", "CLASSIFIER_ERROR")

    @app.exception_handler(EmbeddingProviderError)
    async def _embedding_provider(request: Request, exc: EmbeddingProviderError) -> JSONResponse:
        logger.error("Embedding provider error: %s", exc)
        return error_response(502, "Embedding provider error.", "EMBEDDING_ERROR")

    # --- Catch-all ---

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error.", "INTERNAL_ERROR")
