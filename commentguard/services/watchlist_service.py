"""
Watchlist service.

The watchlist is an owner-maintained list of known-bad identities. Two
checks run against it: a direct match on the commenter, and a mention of a
watchlisted username inside the comment text.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from commentguard.core.database import get_supabase
from commentguard.models.moderation import ModerationInput
from commentguard.models.owner_config import (
    DetectionType,
    OwnerScope,
    WatchlistCheckResult,
    WatchlistMatch,
)

logger = logging.getLogger(__name__)


def contains_mention(text: str, username: str) -> bool:
    """@username anywhere, or the bare username as a whole word."""
    name = username.lstrip("@").strip()
    if not name:
        return False
    escaped = re.escape(name)
    pattern = re.compile(rf"(?:@{escaped}|\b{escaped}\b)", re.IGNORECASE)
    return bool(pattern.search(text or ""))


class WatchlistService:
    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def check_commenter(
        self, commenter_username: str, commenter_id: str, owner: OwnerScope
    ) -> WatchlistCheckResult:
        """Active entries with direct-comment auto-delete matching the commenter."""
        if owner.is_empty:
            return WatchlistCheckResult()

        column, value = owner.column()
        conditions = [f'instagram_username.eq."{commenter_username}"']
        if commenter_id:
            conditions.append(f'instagram_id.eq."{commenter_id}"')

        result = (
            self.supabase.table("known_threats_watchlist")
            .select("id, instagram_username, threat_level, auto_block_direct_comments")
            .eq(column, value)
            .eq("is_active", True)
            .eq("auto_block_direct_comments", True)
            .or_(",".join(conditions))
            .execute()
        )
        return WatchlistCheckResult(
            matches=[
                WatchlistMatch(
                    threat_id=row["id"],
                    name=row.get("instagram_username") or "Unknown",
                    auto_delete_enabled=bool(row.get("auto_block_direct_comments")),
                    threat_level=row.get("threat_level") or "MEDIUM",
                )
                for row in result.data or []
            ]
        )

    def check_mentions(self, comment_text: str, owner: OwnerScope) -> WatchlistCheckResult:
        """Entries monitoring mentions whose username appears in the comment."""
        if owner.is_empty:
            return WatchlistCheckResult()

        column, value = owner.column()
        result = (
            self.supabase.table("known_threats_watchlist")
            .select("id, instagram_username, auto_flag_references")
            .eq(column, value)
            .eq("is_active", True)
            .eq("monitor_username_mentions", True)
            .execute()
        )

        matches = []
        for row in result.data or []:
            username = row.get("instagram_username")
            if username and contains_mention(comment_text, username):
                matches.append(
                    WatchlistMatch(
                        threat_id=row["id"],
                        name=username,
                        auto_delete_enabled=bool(row.get("auto_flag_references")),
                    )
                )
        return WatchlistCheckResult(matches=matches)

    def record_detection(
        self,
        match: WatchlistMatch,
        moderation_input: ModerationInput,
        detection_type: DetectionType,
        matched_keyword: Optional[str] = None,
    ) -> None:
        """Insert a detection event and bump the entry's counters. Never raises."""
        try:
            self.supabase.table("watchlist_detections").insert(
                {
                    "known_threat_id": match.threat_id,
                    "comment_id": moderation_input.comment_id,
                    "detection_type": detection_type.value,
                    "matched_keyword": matched_keyword,
                    "comment_text": moderation_input.comment_text,
                    "commenter_username": moderation_input.commenter_username,
                    "commenter_id": moderation_input.commenter_id,
                    "action_taken": "DELETED",
                    "auto_action": True,
                }
            ).execute()

            current = (
                self.supabase.table("known_threats_watchlist")
                .select("times_detected")
                .eq("id", match.threat_id)
                .limit(1)
                .execute()
            )
            times = (current.data[0].get("times_detected") or 0) if current.data else 0
            now = datetime.now(timezone.utc).isoformat()
            self.supabase.table("known_threats_watchlist").update(
                {"times_detected": times + 1, "last_detected_at": now, "updated_at": now}
            ).eq("id", match.threat_id).execute()
        except Exception:
            logger.exception("Failed to record watchlist detection for threat %s", match.threat_id)
