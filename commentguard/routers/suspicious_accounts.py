"""
Suspicious account router.

Endpoints:
- PUT /{record_id}/auto-hide: Toggle auto-hide and hide past comments
- PUT /{record_id}/auto-delete: Toggle auto-delete, block, and delete past comments
- POST /{record_id}/backfill: Queue the same toggle for the worker pool
"""

import logging

from fastapi import APIRouter, Depends, Query, Request, status

from commentguard.core.rate_limit import limiter
from commentguard.models.suspicious_account import AutoActionToggleRequest, AutoActionToggleResponse
from commentguard.services.action_executor import ActionExecutor
from commentguard.services.moderation_service import default_executor
from commentguard.services.suspicious_account_service import SuspiciousAccountService
from commentguard.tasks.moderation_tasks import backfill_suspicious_account_task

logger = logging.getLogger(__name__)
router = APIRouter()


def get_suspicious_account_service() -> SuspiciousAccountService:
    return SuspiciousAccountService()


def get_action_executor() -> ActionExecutor:
    return default_executor()


@router.put("/{record_id}/auto-hide", response_model=AutoActionToggleResponse)
@limiter.limit("20/minute")
async def toggle_auto_hide(
    request: Request,
    record_id: str,
    body: AutoActionToggleRequest,
    service: SuspiciousAccountService = Depends(get_suspicious_account_service),
    executor: ActionExecutor = Depends(get_action_executor),
) -> AutoActionToggleResponse:
    """Enabling clears auto-delete and hides every existing comment from the account."""
    return service.set_auto_hide(record_id, body.enabled, executor)


@router.put("/{record_id}/auto-delete", response_model=AutoActionToggleResponse)
@limiter.limit("20/minute")
async def toggle_auto_delete(
    request: Request,
    record_id: str,
    body: AutoActionToggleRequest,
    service: SuspiciousAccountService = Depends(get_suspicious_account_service),
    executor: ActionExecutor = Depends(get_action_executor),
) -> AutoActionToggleResponse:
    """Enabling clears auto-hide, blocks the commenter and deletes existing comments."""
    return service.set_auto_delete(record_id, body.enabled, executor)


@router.post("/{record_id}/backfill", status_code=status.HTTP_202_ACCEPTED)
@limiter.limit("10/minute")
async def queue_backfill(
    request: Request,
    record_id: str,
    body: AutoActionToggleRequest,
    action: str = Query(..., pattern="^(hide|delete)$"),
) -> dict:
    """Large accounts: run the toggle and its backfill on a worker instead."""
    task = backfill_suspicious_account_task.delay(record_id, action, body.enabled)
    logger.info("Queued %s backfill for suspicious account %s as task %s", action, record_id, task.id)
    return {"status": "queued", "task_id": task.id, "id": record_id}
