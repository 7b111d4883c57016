"""
Platform side effects with local bookkeeping.

apply_action is the single contract for hide, delete and block: try the
platform call, then always persist local state. A failed platform call
is recorded as <action>_failed / <action>_error on the same row.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from commentguard.core.database import get_supabase
from commentguard.models.moderation import ActionTarget, PlatformAction
from commentguard.services.platform_service import PlatformService

logger = logging.getLogger(__name__)

# action -> (table, state column, timestamp column, failed column, error column)
_LOCAL_STATE: dict[PlatformAction, tuple[str, str, str, str, str]] = {
    PlatformAction.HIDE: ("comments", "is_hidden", "hidden_at", "hide_failed", "hide_error"),
    PlatformAction.DELETE: ("comments", "is_deleted", "deleted_at", "deletion_failed", "deletion_error"),
    PlatformAction.BLOCK: ("suspicious_accounts", "is_blocked", "blocked_at", "block_failed", "block_error"),
}


class ActionExecutor:
    def __init__(
        self,
        supabase: Optional[Client] = None,
        platform: Optional[PlatformService] = None,
    ) -> None:
        self._supabase = supabase
        self.platform = platform or PlatformService()

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def _call_platform(self, action: PlatformAction, target: ActionTarget) -> tuple[bool, Optional[str]]:
        if not target.platform_id or not target.access_token:
            return False, "Missing platform ID or access token"

        if action == PlatformAction.HIDE:
            ok = self.platform.hide_comment(target.platform_id, target.access_token, target.platform)
        elif action == PlatformAction.DELETE:
            ok = self.platform.delete_comment(target.platform_id, target.access_token, target.platform)
        else:
            ok = self.platform.block_user(target.platform_id, target.access_token, target.platform)

        if ok:
            return True, None
        return False, f"{target.platform.value} {action.value} failed"

    def apply_action(self, action: PlatformAction, target: ActionTarget) -> bool:
        """Apply one action. Returns whether the platform call succeeded."""
        ok, error = self._call_platform(action, target)
        if not ok:
            logger.warning(
                "Platform %s failed for %s (%s); recording locally", action.value, target.local_id, error
            )

        table, state_col, at_col, failed_col, error_col = _LOCAL_STATE[action]
        self.supabase.table(table).update(
            {
                state_col: True,
                at_col: datetime.now(timezone.utc).isoformat(),
                failed_col: not ok,
                error_col: error,
            }
        ).eq("id", target.local_id).execute()
        return ok


class NoOpActionExecutor(ActionExecutor):
    """Executor for test mode: logs what would happen and touches nothing."""

    def __init__(self) -> None:
        super().__init__(supabase=None, platform=None)

    def apply_action(self, action: PlatformAction, target: ActionTarget) -> bool:
        logger.info("[TEST MODE] Would %s %s on %s", action.value, target.local_id, target.platform.value)
        return True
