"""
Moderation router for ingestion integrations.

Endpoints:
- POST /evaluate: Moderate one comment synchronously
- POST /enqueue: Queue one comment for the Celery worker pool
- POST /analyze-url: Threat analysis for a link found in a comment
- POST /settings/invalidate: Drop cached moderation settings for an owner
"""

import logging

from fastapi import APIRouter, Depends, Request, status

from commentguard.core.rate_limit import limiter
from commentguard.models.moderation import (
    AnalyzeUrlRequest,
    EnqueueCommentResponse,
    EvaluateCommentRequest,
    InvalidateSettingsRequest,
    ModerationInput,
    ModerationResult,
    OwnerNotResolvedError,
    UrlAnalysis,
)
from commentguard.models.owner_config import OwnerScope
from commentguard.services.account_service import AccountService
from commentguard.services.llm_service import LLMService
from commentguard.services.moderation_service import ModerationService
from commentguard.services.settings_resolver import SettingsResolver
from commentguard.tasks.moderation_tasks import moderate_comment_task

logger = logging.getLogger(__name__)
router = APIRouter()


def get_moderation_service() -> ModerationService:
    return ModerationService()


def get_account_service() -> AccountService:
    return AccountService()


def get_llm_service() -> LLMService:
    return LLMService()


def get_settings_resolver() -> SettingsResolver:
    return SettingsResolver()


def _with_owner(moderation_input: ModerationInput, account_service: AccountService) -> ModerationInput:
    if moderation_input.user_id or moderation_input.client_id:
        return moderation_input
    owner = account_service.resolve_owner(
        moderation_input.instagram_account_id, moderation_input.facebook_page_id
    )
    if owner.is_empty:
        raise OwnerNotResolvedError("No user or client owns this account")
    return moderation_input.model_copy(update={"user_id": owner.user_id, "client_id": owner.client_id})


@router.post("/evaluate", response_model=ModerationResult)
@limiter.limit("60/minute")
async def evaluate_comment(
    request: Request,
    body: EvaluateCommentRequest,
    moderation_service: ModerationService = Depends(get_moderation_service),
    account_service: AccountService = Depends(get_account_service),
) -> ModerationResult:
    """Run the full moderation pipeline and return the verdict."""
    moderation_input = _with_owner(body.to_input(), account_service)
    return await moderation_service.moderate_comment(moderation_input)


@router.post("/enqueue", response_model=EnqueueCommentResponse, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("300/minute")
async def enqueue_comment(request: Request, body: EvaluateCommentRequest) -> EnqueueCommentResponse:
    """Queue a comment; the worker resolves the owner when it is missing."""
    task = moderate_comment_task.delay(body.to_input().model_dump())
    logger.info("Queued comment %s as task %s", body.comment_id, task.id)
    return EnqueueCommentResponse(task_id=task.id, comment_id=body.comment_id)


@router.post("/analyze-url", response_model=UrlAnalysis)
@limiter.limit("30/minute")
async def analyze_url(
    request: Request,
    body: AnalyzeUrlRequest,
    llm_service: LLMService = Depends(get_llm_service),
) -> UrlAnalysis:
    return llm_service.analyze_url(body.url)


@router.post("/settings/invalidate", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
async def invalidate_settings(
    request: Request,
    body: InvalidateSettingsRequest,
    resolver: SettingsResolver = Depends(get_settings_resolver),
) -> None:
    """Called after an owner edits moderation settings."""
    owner = OwnerScope(user_id=body.user_id, client_id=body.client_id)
    if owner.is_empty:
        raise OwnerNotResolvedError("user_id or client_id is required")
    resolver.invalidate(owner)
