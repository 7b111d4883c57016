"""
Comment moderation pipeline.

Handles:
- Billing gate before any work is done
- Concurrent signal gathering (whitelist, owner, history, watchlist,
  filters, similarity, settings)
- The decision cascade
- Side effects of the verdict: platform action, watchlist detections,
  suspicious account tracking, evidence, usage billing, analytics

moderate_comment never raises. Any unexpected failure up to and including
the platform action yields FLAGGED / SYSTEM_ERROR so the comment lands in
manual review. Recording after the action is best-effort and never changes
the returned verdict.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from commentguard.core.config import get_settings
from commentguard.core.posthog import capture as posthog_capture
from commentguard.models.moderation import (
    ActionTaken,
    ActionTarget,
    Classification,
    CommentCategory,
    ModerationInput,
    ModerationResult,
    ReasonCode,
)
from commentguard.models.owner_config import DetectionType
from commentguard.models.suspicious_account import TrackCommentInput
from commentguard.services.action_executor import ActionExecutor, NoOpActionExecutor
from commentguard.services.billing_service import BillingService
from commentguard.services.decision_engine import CascadeContext, DecisionEngine, Verdict
from commentguard.services.evidence_service import EvidenceService
from commentguard.services.signal_aggregator import SignalAggregator, Signals
from commentguard.services.suspicious_account_service import SuspiciousAccountService
from commentguard.services.watchlist_service import WatchlistService

logger = logging.getLogger(__name__)


def default_executor() -> ActionExecutor:
    """NoOp executor when MODERATION_TEST_MODE is set."""
    if get_settings().moderation_test_mode:
        return NoOpActionExecutor()
    return ActionExecutor()


class ModerationService:
    """Runs one comment through the full moderation pipeline."""

    def __init__(
        self,
        aggregator: Optional[SignalAggregator] = None,
        engine: Optional[DecisionEngine] = None,
        executor: Optional[ActionExecutor] = None,
        watchlist: Optional[WatchlistService] = None,
        tracker: Optional[SuspiciousAccountService] = None,
        evidence: Optional[EvidenceService] = None,
        billing: Optional[BillingService] = None,
    ) -> None:
        self.aggregator = aggregator or SignalAggregator()
        self.engine = engine or DecisionEngine()
        self.executor = executor or default_executor()
        self.watchlist = watchlist or WatchlistService()
        self.tracker = tracker or SuspiciousAccountService()
        self.evidence = evidence or EvidenceService()
        self.billing = billing or BillingService()

    async def moderate_comment(self, moderation_input: ModerationInput) -> ModerationResult:
        started = time.monotonic()
        try:
            allowed = await asyncio.to_thread(
                self.billing.check_feature_allowed, moderation_input.user_id, moderation_input.client_id
            )
            signals = await self.aggregator.gather(moderation_input) if allowed else None
            ctx = CascadeContext(moderation_input=moderation_input, signals=signals, billing_allowed=allowed)
            verdict = await asyncio.to_thread(self.engine.decide, ctx)
            if signals is not None:
                await asyncio.to_thread(self._finalize, moderation_input, signals, verdict)
        except Exception as e:
            logger.exception(
                "Moderation failed for comment %s",
                moderation_input.comment_id,
                extra={"comment_id": moderation_input.comment_id},
            )
            return await asyncio.to_thread(self._system_error, moderation_input, e)

        logger.info(
            "Moderation completed in %dms: %s (%s)",
            (time.monotonic() - started) * 1000,
            verdict.action.value,
            verdict.reason.value,
        )
        return ModerationResult(
            action=verdict.action,
            reason=verdict.reason,
            classification=verdict.classification,
            risk_score=verdict.risk_score,
            identifiers=verdict.classification.extracted_identifiers,
        )

    # =========================================================================
    # Side effects
    # =========================================================================

    def _finalize(self, moderation_input: ModerationInput, signals: Signals, verdict: Verdict) -> None:
        """Apply the verdict, then record it. Recording failures never change the verdict."""
        if verdict.platform_action is not None:
            self.executor.apply_action(verdict.platform_action, ActionTarget.for_comment(moderation_input))

        comment_id = moderation_input.comment_id
        for match, detection_type in verdict.detections:
            self._best_effort(
                "watchlist detection",
                comment_id,
                self.watchlist.record_detection,
                match,
                moderation_input,
                detection_type,
                matched_keyword=match.name if detection_type == DetectionType.USERNAME_MENTION else None,
            )

        suspicious_account_id = self._track(moderation_input, signals, verdict)

        if verdict.record_evidence:
            self._best_effort(
                "evidence",
                comment_id,
                self.evidence.record,
                moderation_input,
                verdict.classification,
                verdict.risk_score,
                verdict.action,
                formula=verdict.formula,
            )
            identifiers = verdict.classification.extracted_identifiers
            if suspicious_account_id and identifiers and not signals.is_owner:
                self._best_effort(
                    "extracted identifiers",
                    comment_id,
                    self.evidence.record_identifiers,
                    comment_id,
                    suspicious_account_id,
                    identifiers,
                    verdict.classification.confidence,
                )

        if verdict.action != ActionTaken.BENIGN:
            self._best_effort(
                "usage tracking",
                comment_id,
                self.billing.track,
                moderation_input.user_id,
                moderation_input.client_id,
            )

        if not signals.owner.is_empty:
            posthog_capture(
                distinct_id=signals.owner.column()[1],
                event="comment_moderated",
                properties={
                    "action": verdict.action.value,
                    "reason": verdict.reason.value,
                    "category": verdict.classification.category.value,
                    "risk_score": verdict.risk_score,
                },
                account_id=moderation_input.account_id,
            )

    def _best_effort(
        self, what: str, comment_id: str, fn: Callable[..., Any], *args: Any, **kwargs: Any
    ) -> None:
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("Failed to record %s for comment %s", what, comment_id)

    def _track(self, moderation_input: ModerationInput, signals: Signals, verdict: Verdict) -> Optional[str]:
        """Fold the comment into the commenter's record. Best-effort."""
        if not verdict.track_account or signals.is_owner or not moderation_input.instagram_account_id:
            return None
        try:
            return self.tracker.track(
                TrackCommentInput(
                    instagram_account_id=moderation_input.instagram_account_id,
                    commenter_id=moderation_input.commenter_id,
                    commenter_username=moderation_input.commenter_username,
                    comment_id=moderation_input.comment_id,
                    category=verdict.classification.category,
                    risk_score=verdict.risk_score,
                    was_deleted=verdict.action == ActionTaken.DELETED,
                )
            )
        except Exception:
            logger.exception("Suspicious account tracking failed for comment %s", moderation_input.comment_id)
            return None

    def _system_error(self, moderation_input: ModerationInput, error: Exception) -> ModerationResult:
        try:
            self.evidence.record(
                moderation_input,
                Classification(
                    category=CommentCategory.BENIGN,
                    severity=0,
                    confidence=0.0,
                    rationale=f"Moderation system error - flagged for manual review. Error: {error}",
                ),
                0,
                ActionTaken.FLAGGED,
                degraded=True,
            )
        except Exception:
            logger.exception("Failed to record degraded evidence for comment %s", moderation_input.comment_id)

        return ModerationResult(
            action=ActionTaken.FLAGGED,
            reason=ReasonCode.SYSTEM_ERROR,
            classification=Classification(
                category=CommentCategory.BENIGN,
                severity=0,
                confidence=0.0,
                rationale=f"Moderation system error: {error}",
            ),
        )
