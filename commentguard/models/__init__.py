"""Pydantic models for CommentGuard."""

from commentguard.models.moderation import (
    ActionTaken,
    Classification,
    CommentCategory,
    ModerationInput,
    ModerationResult,
    ReasonCode,
)
from commentguard.models.moderation_settings import CategoryPolicy, ModerationSettingsResult
from commentguard.models.suspicious_account import (
    SuspiciousAccountNotFoundError,
    SuspiciousAccountRecord,
)

__all__ = [
    # Moderation models
    "ActionTaken",
    "Classification",
    "CommentCategory",
    "ModerationInput",
    "ModerationResult",
    "ReasonCode",
    # Settings models
    "CategoryPolicy",
    "ModerationSettingsResult",
    # Suspicious account models
    "SuspiciousAccountNotFoundError",
    "SuspiciousAccountRecord",
]
