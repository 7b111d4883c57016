"""
Celery tasks for comment ingestion.

Handles:
- moderate_comment_task: one moderation pipeline run per incoming comment
- backfill_suspicious_account_task: auto-hide / auto-delete toggles with
  their backfill, off the request path
"""

import asyncio
import logging

from commentguard.core.celery_app import celery_app
from commentguard.core.constants import (
    MODERATION_TASK_MAX_RETRIES,
    MODERATION_TASK_RETRY_DELAY_SECONDS,
)
from commentguard.core.middleware import bind_correlation_id, reset_correlation_id
from commentguard.models.moderation import ModerationInput, OwnerNotResolvedError, PlatformAction
from commentguard.models.suspicious_account import SuspiciousAccountNotFoundError
from commentguard.services.account_service import AccountService
from commentguard.services.moderation_service import ModerationService, default_executor
from commentguard.services.suspicious_account_service import SuspiciousAccountService

logger = logging.getLogger(__name__)


def run_async(coro):
    """Helper to run async code in Celery tasks."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _with_owner(moderation_input: ModerationInput) -> ModerationInput:
    """Fill in user_id / client_id from the owning account when the job lacks both."""
    if moderation_input.user_id or moderation_input.client_id:
        return moderation_input

    owner = AccountService().resolve_owner(
        moderation_input.instagram_account_id, moderation_input.facebook_page_id
    )
    if owner.is_empty:
        raise OwnerNotResolvedError(
            f"No owner for account={moderation_input.instagram_account_id} "
            f"page={moderation_input.facebook_page_id}"
        )
    return moderation_input.model_copy(update={"user_id": owner.user_id, "client_id": owner.client_id})


@celery_app.task(
    bind=True,
    max_retries=MODERATION_TASK_MAX_RETRIES,
    default_retry_delay=MODERATION_TASK_RETRY_DELAY_SECONDS,
)
def moderate_comment_task(self, payload: dict) -> dict:
    """
    Moderate one comment.

    Args:
        payload: ModerationInput fields

    Returns:
        ModerationResult as a JSON-safe dict
    """
    moderation_input = ModerationInput.model_validate(payload)
    token = bind_correlation_id(moderation_input.comment_id)
    try:
        logger.info("Moderating comment %s", moderation_input.comment_id)
        moderation_input = _with_owner(moderation_input)
        result = run_async(ModerationService().moderate_comment(moderation_input))
        return result.model_dump(mode="json")
    except OwnerNotResolvedError:
        logger.error("Dropping comment %s: owner could not be resolved", moderation_input.comment_id)
        raise
    except Exception as exc:
        logger.warning(
            "Moderation job for %s failed (attempt %d), retrying: %s",
            moderation_input.comment_id,
            self.request.retries + 1,
            exc,
        )
        raise self.retry(exc=exc)
    finally:
        reset_correlation_id(token)


@celery_app.task(
    bind=True,
    max_retries=MODERATION_TASK_MAX_RETRIES,
    default_retry_delay=MODERATION_TASK_RETRY_DELAY_SECONDS,
)
def backfill_suspicious_account_task(self, record_id: str, action: str, enabled: bool = True) -> dict:
    """
    Toggle auto-hide or auto-delete on a suspicious account and backfill.

    Args:
        record_id: suspicious_accounts.id
        action: "hide" or "delete"
        enabled: new toggle value
    """
    service = SuspiciousAccountService()
    executor = default_executor()
    try:
        if PlatformAction(action) == PlatformAction.DELETE:
            response = service.set_auto_delete(record_id, enabled, executor)
        else:
            response = service.set_auto_hide(record_id, enabled, executor)
    except SuspiciousAccountNotFoundError:
        logger.warning("Suspicious account %s not found for backfill", record_id)
        return {"status": "not_found", "id": record_id}
    except Exception as exc:
        raise self.retry(exc=exc)

    return response.model_dump()
