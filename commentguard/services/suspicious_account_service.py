"""
Suspicious account tracking.

One record per (owning account, commenter). Every moderated comment that is
not the owner's is folded into the record; repeated violations can auto-block
the commenter. Owners can toggle auto-hide or auto-delete per record, which
also backfills the commenter's existing comments.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from supabase import Client

from commentguard.core.constants import (
    AUTO_BLOCK_AVERAGE_RISK,
    AUTO_BLOCK_BLACKMAIL_COUNT,
    AUTO_BLOCK_DELETED_COUNT,
    AUTO_BLOCK_SPAM_COUNT,
    AUTO_BLOCK_SPAM_PER_DAY,
    AUTO_BLOCK_THREAT_COUNT,
    BACKFILL_BATCH_SIZE,
    FLAGGED_RISK_THRESHOLD,
)
from commentguard.core.database import get_supabase
from commentguard.models.moderation import (
    ActionTarget,
    CommentCategory,
    ModerationInput,
    PlatformAction,
)
from commentguard.models.suspicious_account import (
    CATEGORY_COUNT_COLUMNS,
    AutoActionToggleResponse,
    SuspiciousAccountNotFoundError,
    SuspiciousAccountRecord,
    TrackCommentInput,
)
from commentguard.services.account_service import AccountService
from commentguard.services.action_executor import ActionExecutor

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _bare(username: Optional[str]) -> str:
    return (username or "").strip().lstrip("@").lower()


def auto_block_reason(record: SuspiciousAccountRecord, now: Optional[datetime] = None) -> Optional[str]:
    """Reason to auto-block this record, or None. Strongest rule wins."""
    if (
        record.deleted_comments >= AUTO_BLOCK_DELETED_COUNT
        and record.average_risk_score > AUTO_BLOCK_AVERAGE_RISK
    ):
        return (
            f"Auto-blocked: {record.deleted_comments} violations, "
            f"average risk {record.average_risk_score:.2f}"
        )
    if record.threat_count >= AUTO_BLOCK_THREAT_COUNT:
        return f"Auto-blocked: {record.threat_count} threats detected"
    if record.blackmail_count >= AUTO_BLOCK_BLACKMAIL_COUNT:
        return f"Auto-blocked: {record.blackmail_count} blackmail attempts"
    if record.spam_count > AUTO_BLOCK_SPAM_COUNT:
        now = now or datetime.now(timezone.utc)
        first_seen = record.first_seen_at or now
        if first_seen.tzinfo is None:
            first_seen = first_seen.replace(tzinfo=timezone.utc)
        age_days = max(1, (now - first_seen).days)
        per_day = record.total_comments / age_days
        if per_day > AUTO_BLOCK_SPAM_PER_DAY:
            return (
                f"Auto-blocked: spam bot detected "
                f"({record.spam_count} spam comments, {per_day:.1f} per day)"
            )
    return None


class SuspiciousAccountService:
    def __init__(
        self,
        supabase: Optional[Client] = None,
        accounts: Optional[AccountService] = None,
    ) -> None:
        self._supabase = supabase
        self._accounts = accounts

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    @property
    def accounts(self) -> AccountService:
        if self._accounts is None:
            self._accounts = AccountService(self.supabase)
        return self._accounts

    # =========================================================================
    # Lookups
    # =========================================================================

    def _select_one(self, **filters: Any) -> Optional[SuspiciousAccountRecord]:
        query = self.supabase.table("suspicious_accounts").select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        result = query.limit(1).execute()
        return SuspiciousAccountRecord.from_row(result.data[0]) if result.data else None

    def find(
        self, instagram_account_id: str, commenter_id: str, commenter_username: str = ""
    ) -> Optional[SuspiciousAccountRecord]:
        """Exact ID, then exact username, then the other '@' form, then case-insensitive."""
        if commenter_id:
            record = self._select_one(instagram_account_id=instagram_account_id, commenter_id=commenter_id)
            if record:
                return record

        username = (commenter_username or "").strip()
        if not username:
            return None

        record = self._select_one(instagram_account_id=instagram_account_id, commenter_username=username)
        if record:
            return record

        alternate = username[1:] if username.startswith("@") else f"@{username}"
        record = self._select_one(instagram_account_id=instagram_account_id, commenter_username=alternate)
        if record:
            return record

        wanted = _bare(username)
        rows = (
            self.supabase.table("suspicious_accounts")
            .select("*")
            .eq("instagram_account_id", instagram_account_id)
            .execute()
        )
        for row in rows.data or []:
            if _bare(row.get("commenter_username")) == wanted:
                return SuspiciousAccountRecord.from_row(row)
        return None

    def get(self, record_id: str) -> SuspiciousAccountRecord:
        """
        Raises:
            SuspiciousAccountNotFoundError: no record with this ID
        """
        record = self._select_one(id=record_id)
        if record is None:
            raise SuspiciousAccountNotFoundError(f"Suspicious account {record_id} not found")
        return record

    def get_repeat_offender_count(self, instagram_account_id: str, commenter_id: str) -> int:
        """Deleted-comment count for this commenter on this account."""
        record = self._select_one(instagram_account_id=instagram_account_id, commenter_id=commenter_id)
        return record.deleted_comments if record else 0

    # =========================================================================
    # Tracking
    # =========================================================================

    def _is_owner(self, data: TrackCommentInput) -> bool:
        return self.accounts.is_commenter_owner(
            ModerationInput(
                comment_id=data.comment_id,
                comment_text="",
                commenter_id=data.commenter_id,
                commenter_username=data.commenter_username,
                instagram_account_id=data.instagram_account_id,
            )
        )

    def _track_atomic(self, data: TrackCommentInput) -> Optional[str]:
        """Counter update through the database function. None when unavailable."""
        try:
            result = self.supabase.rpc(
                "track_suspicious_comment",
                {
                    "p_instagram_account_id": data.instagram_account_id,
                    "p_commenter_id": data.commenter_id,
                    "p_commenter_username": data.commenter_username,
                    "p_category": data.category.value,
                    "p_risk_score": data.risk_score,
                    "p_was_deleted": data.was_deleted,
                    "p_flagged_threshold": FLAGGED_RISK_THRESHOLD,
                },
            ).execute()
        except Exception as e:
            logger.warning("track_suspicious_comment RPC unavailable, falling back: %s", e)
            return None

        data_out = result.data
        if isinstance(data_out, list):
            data_out = data_out[0] if data_out else None
        if isinstance(data_out, dict):
            return data_out.get("id")
        return data_out if isinstance(data_out, str) else None

    def _create(self, data: TrackCommentInput) -> str:
        has_violation = data.category != CommentCategory.BENIGN and (
            data.risk_score > FLAGGED_RISK_THRESHOLD or data.was_deleted
        )
        now = _now()
        row: dict[str, Any] = {
            "instagram_account_id": data.instagram_account_id,
            "commenter_id": data.commenter_id,
            "commenter_username": data.commenter_username,
            "total_comments": 1,
            "flagged_comments": 1 if data.risk_score > FLAGGED_RISK_THRESHOLD else 0,
            "deleted_comments": 1 if data.was_deleted else 0,
            "highest_risk_score": data.risk_score,
            "average_risk_score": float(data.risk_score),
            "first_seen_at": now,
            "last_seen_at": now,
            "is_hidden": not has_violation,
        }
        for category, column in CATEGORY_COUNT_COLUMNS.items():
            row[column] = 1 if data.category == category else 0

        result = self.supabase.table("suspicious_accounts").insert(row).execute()
        return result.data[0]["id"]

    def _update(self, record: SuspiciousAccountRecord, data: TrackCommentInput) -> None:
        total = record.total_comments
        updates: dict[str, Any] = {
            "total_comments": total + 1,
            "last_seen_at": _now(),
            "average_risk_score": round(
                (record.average_risk_score * total + data.risk_score) / (total + 1), 2
            ),
        }
        if data.risk_score > FLAGGED_RISK_THRESHOLD:
            updates["flagged_comments"] = record.flagged_comments + 1
        if data.was_deleted:
            updates["deleted_comments"] = record.deleted_comments + 1
        column = CATEGORY_COUNT_COLUMNS.get(data.category)
        if column:
            updates[column] = getattr(record, column) + 1
        if data.risk_score > record.highest_risk_score:
            updates["highest_risk_score"] = data.risk_score

        violations = record.violation_count + (1 if column else 0)
        if violations > 0 and not record.is_watchlisted and not record.is_public_threat:
            updates["is_hidden"] = False

        self.supabase.table("suspicious_accounts").update(updates).eq("id", record.id).execute()

    def track(self, data: TrackCommentInput) -> Optional[str]:
        """
        Fold one moderated comment into the commenter's record.

        Returns the record ID, or None when the commenter is the account owner.
        """
        if self._is_owner(data):
            logger.debug("Skipping tracking for account owner on %s", data.instagram_account_id)
            return None

        record_id = self._track_atomic(data)
        if record_id is None:
            existing = self._select_one(
                instagram_account_id=data.instagram_account_id, commenter_id=data.commenter_id
            )
            if existing is None:
                record_id = self._create(data)
            else:
                self._update(existing, data)
                record_id = existing.id

        self.supabase.table("account_comment_map").insert(
            {"suspicious_account_id": record_id, "comment_id": data.comment_id}
        ).execute()

        self.check_auto_block(record_id)
        return record_id

    def check_auto_block(self, record_id: str) -> bool:
        """Block the record when an auto-block rule fires. Never unblocks."""
        record = self._select_one(id=record_id)
        if record is None or record.is_blocked:
            return False

        reason = auto_block_reason(record)
        if reason is None:
            return False

        result = (
            self.supabase.table("suspicious_accounts")
            .update({"is_blocked": True, "block_reason": reason, "blocked_at": _now()})
            .eq("id", record_id)
            .eq("is_blocked", False)
            .execute()
        )
        if result.data:
            logger.info("Suspicious account %s auto-blocked: %s", record_id, reason)
            return True
        return False

    # =========================================================================
    # Auto-action toggles
    # =========================================================================

    def _backfill(
        self, record: SuspiciousAccountRecord, action: PlatformAction, executor: ActionExecutor
    ) -> tuple[int, int]:
        """Apply action to the commenter's tracked comments not already in that state."""
        links = (
            self.supabase.table("account_comment_map")
            .select("comment_id")
            .eq("suspicious_account_id", record.id)
            .execute()
        )
        comment_ids = list({row["comment_id"] for row in links.data or []})
        if not comment_ids:
            return 0, 0

        credentials = self.accounts.get_instagram_credentials(record.instagram_account_id) or {}
        state_column = "is_hidden" if action == PlatformAction.HIDE else "is_deleted"
        processed = failures = 0

        for start in range(0, len(comment_ids), BACKFILL_BATCH_SIZE):
            batch = comment_ids[start : start + BACKFILL_BATCH_SIZE]
            rows = (
                self.supabase.table("comments")
                .select(f"id, ig_comment_id, {state_column}")
                .in_("id", batch)
                .execute()
            )
            for row in rows.data or []:
                if row.get(state_column):
                    continue
                target = ActionTarget(
                    local_id=row["id"],
                    platform_id=row.get("ig_comment_id"),
                    access_token=credentials.get("access_token"),
                )
                if not executor.apply_action(action, target):
                    failures += 1
                processed += 1

        logger.info(
            "Backfilled %s on %d comment(s) for %s (%d platform failure(s))",
            action.value,
            processed,
            record.id,
            failures,
        )
        return processed, failures

    def _response(self, record_id: str, processed: int = 0, failures: int = 0) -> AutoActionToggleResponse:
        record = self.get(record_id)
        return AutoActionToggleResponse(
            id=record.id,
            auto_hide_enabled=record.auto_hide_enabled,
            auto_delete_enabled=record.auto_delete_enabled,
            is_blocked=record.is_blocked,
            comments_processed=processed,
            platform_failures=failures,
        )

    def set_auto_hide(
        self, record_id: str, enabled: bool, executor: ActionExecutor
    ) -> AutoActionToggleResponse:
        """Enabling clears auto-delete and hides existing comments. Disabling un-hides nothing."""
        record = self.get(record_id)
        updates: dict[str, Any] = {"auto_hide_enabled": enabled}
        if enabled:
            updates["auto_delete_enabled"] = False
        self.supabase.table("suspicious_accounts").update(updates).eq("id", record_id).execute()

        if not enabled:
            return self._response(record_id)
        processed, failures = self._backfill(record, PlatformAction.HIDE, executor)
        return self._response(record_id, processed, failures)

    def set_auto_delete(
        self, record_id: str, enabled: bool, executor: ActionExecutor
    ) -> AutoActionToggleResponse:
        """Enabling clears auto-hide, blocks the commenter and deletes existing comments."""
        record = self.get(record_id)
        updates: dict[str, Any] = {"auto_delete_enabled": enabled}
        if enabled:
            updates["auto_hide_enabled"] = False
            if not record.is_blocked:
                updates.update({"is_blocked": True, "blocked_at": _now()})
                if not record.block_reason:
                    updates["block_reason"] = "Auto-delete enabled by owner"
        self.supabase.table("suspicious_accounts").update(updates).eq("id", record_id).execute()

        if not enabled:
            return self._response(record_id)

        failures = 0
        if not record.is_blocked:
            credentials = self.accounts.get_instagram_credentials(record.instagram_account_id) or {}
            target = ActionTarget(
                local_id=record.id,
                platform_id=record.commenter_id,
                access_token=credentials.get("access_token"),
            )
            if not executor.apply_action(PlatformAction.BLOCK, target):
                failures += 1

        processed, delete_failures = self._backfill(record, PlatformAction.DELETE, executor)
        return self._response(record_id, processed, failures + delete_failures)
