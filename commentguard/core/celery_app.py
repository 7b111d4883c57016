"""
Celery application for CommentGuard.

Runs asynchronous comment ingestion:
- moderate_comment: one moderation pipeline run per incoming comment
- backfill_suspicious_account: retroactive hide/delete after a toggle
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from commentguard.core.config import get_settings
from commentguard.core.constants import MAX_QUEUE_CONCURRENCY
from commentguard.core.logging_config import setup_logging

settings = get_settings()

celery_app = Celery(
    "commentguard",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "commentguard.tasks.moderation_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minute hard limit
    task_soft_time_limit=240,
    # Redeliver if a worker dies mid-comment
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    result_expires=3600,
    worker_prefetch_multiplier=1,
    worker_concurrency=min(settings.comment_queue_concurrency, MAX_QUEUE_CONCURRENCY),
    task_routes={
        "commentguard.tasks.moderation_tasks.*": {"queue": "comments"},
    },
)


@celery_setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    setup_logging()
