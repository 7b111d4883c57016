"""Business logic services for CommentGuard."""

from commentguard.services.decision_engine import CASCADE_RULES, DecisionEngine
from commentguard.services.moderation_service import ModerationService
from commentguard.services.suspicious_account_service import SuspiciousAccountService

__all__ = [
    "CASCADE_RULES",
    "DecisionEngine",
    "ModerationService",
    "SuspiciousAccountService",
]
