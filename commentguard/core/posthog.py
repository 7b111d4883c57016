"""PostHog analytics client for server-side moderation events.

Fire-and-forget: analytics failures never affect a moderation decision.
The owning user or client ID is used as distinct_id; the owning account
is attached as a group so dashboards can slice per account.
"""

import logging
from typing import Optional

import posthog as _posthog

from commentguard.core.config import get_settings

logger = logging.getLogger(__name__)

_initialized = False


def init_posthog() -> None:
    """Initialize PostHog client. Call once at startup."""
    global _initialized
    settings = get_settings()

    if not settings.posthog_enabled or not settings.posthog_api_key:
        logger.info("PostHog disabled (no API key or posthog_enabled=False)")
        return

    _posthog.api_key = settings.posthog_api_key
    _posthog.host = settings.posthog_host
    _posthog.debug = settings.debug
    _initialized = True
    logger.info("PostHog initialized (host=%s)", settings.posthog_host)


def shutdown_posthog() -> None:
    """Flush pending events and shut down."""
    if _initialized:
        _posthog.flush()
        _posthog.shutdown()
        logger.info("PostHog shut down")


def capture(
    distinct_id: str,
    event: str,
    properties: Optional[dict] = None,
    account_id: Optional[str] = None,
) -> None:
    """Track an event in PostHog (fire-and-forget).

    Args:
        distinct_id: Owner ID (user or client UUID).
        event: Event name in noun_verb format (e.g. "comment_moderated").
        properties: Event properties dict.
        account_id: If provided, attaches the owning account as a group.
    """
    if not _initialized:
        return

    try:
        props = dict(properties) if properties else {}

        groups = {}
        if account_id:
            groups["account"] = account_id
            props["account_id"] = account_id

        _posthog.capture(
            distinct_id=distinct_id,
            event=event,
            properties=props,
            groups=groups if groups else None,
        )
    except Exception as e:
        logger.warning("PostHog capture failed for '%s': %s", event, e)
