"""
Suspicious account models.

A suspicious account is the tracked aggregate for one (owning account,
commenter) pair. Records are never hard-deleted.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from commentguard.models.moderation import CommentCategory

CATEGORY_COUNT_COLUMNS: dict[CommentCategory, str] = {
    CommentCategory.BLACKMAIL: "blackmail_count",
    CommentCategory.THREAT: "threat_count",
    CommentCategory.HARASSMENT: "harassment_count",
    CommentCategory.SPAM: "spam_count",
    CommentCategory.DEFAMATION: "defamation_count",
}

# ===========================================
# Records
# ===========================================


class SuspiciousAccountRecord(BaseModel):
    id: str
    instagram_account_id: str
    commenter_id: str
    commenter_username: str = ""
    total_comments: int = 0
    flagged_comments: int = 0
    deleted_comments: int = 0
    blackmail_count: int = 0
    threat_count: int = 0
    harassment_count: int = 0
    spam_count: int = 0
    defamation_count: int = 0
    highest_risk_score: int = 0
    average_risk_score: float = 0.0
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
    auto_hide_enabled: bool = False
    auto_delete_enabled: bool = False
    is_blocked: bool = False
    block_reason: Optional[str] = None
    is_watchlisted: bool = False
    is_public_threat: bool = False
    is_hidden: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SuspiciousAccountRecord":
        """Build from a database row, treating NULL counters as zero."""
        data = {k: v for k, v in row.items() if v is not None}
        if "average_risk_score" in data:
            data["average_risk_score"] = float(data["average_risk_score"])
        return cls.model_validate(data)

    @property
    def violation_count(self) -> int:
        return sum(getattr(self, column) for column in CATEGORY_COUNT_COLUMNS.values())


class TrackCommentInput(BaseModel):
    """One moderated comment to fold into the commenter's aggregate."""

    instagram_account_id: str
    commenter_id: str
    commenter_username: str = ""
    comment_id: str
    category: CommentCategory
    risk_score: int = Field(ge=0, le=100)
    was_deleted: bool = False


# ===========================================
# Response Models
# ===========================================


class AutoActionToggleRequest(BaseModel):
    enabled: bool


class AutoActionToggleResponse(BaseModel):
    id: str
    auto_hide_enabled: bool
    auto_delete_enabled: bool
    is_blocked: bool
    comments_processed: int = 0
    platform_failures: int = 0


# ===========================================
# Exception Classes
# ===========================================


class SuspiciousAccountError(Exception):
    """Base exception for suspicious account errors."""

    pass


class SuspiciousAccountNotFoundError(SuspiciousAccountError):
    """No suspicious account exists with the given ID."""

    pass
