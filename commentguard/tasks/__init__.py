"""Background tasks for CommentGuard."""

from commentguard.tasks.moderation_tasks import backfill_suspicious_account_task, moderate_comment_task

__all__ = ["moderate_comment_task", "backfill_suspicious_account_task"]
