"""
Moderation decision cascade.

CASCADE_RULES is the ordered rule table. Each name maps to a _rule_<name>
method that either returns a terminal Verdict or None to fall through.
Some rules only enrich the context (classification, risk score) or
annotate the rationale on the way past.

Priority, highest first:
 1. billing limit reached
 2. commenter whitelisted
 3. commenter is the account owner
 4. auto-delete enabled for this commenter
 5. high-confidence similarity to an auto-action review (LLM skipped)
 6. classification (pattern + classifier + re-evaluation + validation)
 7. commenter on the watchlist
 8. extracted identifier whitelisted
 9. comment mentions a watchlisted account
10. risk score
11. custom filters (delete > hide > flag annotation)
12. classifier confidence thresholds
13. similarity to an auto-action review
14. similarity to an allowed review (confirmed only when benign)
15. per-account auto-hide, category policy, risk flag, benign
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from commentguard.core.constants import (
    RISK_FLAG_FLOOR,
    SIMILAR_DELETE_RISK,
    SIMILAR_HIDE_RISK,
    WATCHLIST_CONFIDENCE_FLOOR,
    WATCHLIST_SEVERITY_FLOOR,
)
from commentguard.models.moderation import (
    ActionTaken,
    AutoActionKind,
    Classification,
    CommentCategory,
    ModerationInput,
    PlatformAction,
    ReasonCode,
    RiskScoreResult,
)
from commentguard.models.owner_config import DetectionType, WatchlistMatch
from commentguard.services.classifier import ClassifierService
from commentguard.services.custom_filter_service import CustomFilterService, risk_for_match
from commentguard.services.risk_scoring import calculate_risk_score
from commentguard.services.signal_aggregator import Signals
from commentguard.services.suspicious_account_service import SuspiciousAccountService
from commentguard.services.whitelist_service import WhitelistService

logger = logging.getLogger(__name__)

CASCADE_RULES: tuple[str, ...] = (
    "billing_limit",
    "commenter_whitelisted",
    "post_owner",
    "auto_delete_enabled",
    "similar_high_confidence",
    "classify",
    "watchlist_match",
    "identifier_whitelisted",
    "watchlist_mention",
    "score_risk",
    "custom_filters",
    "confidence_thresholds",
    "similar_match",
    "allowed_similar",
    "category_policy",
)


def _benign(rationale: str, severity: int = 0, confidence: float = 1.0) -> Classification:
    return Classification(
        category=CommentCategory.BENIGN, severity=severity, confidence=confidence, rationale=rationale
    )


@dataclass
class Verdict:
    action: ActionTaken
    reason: ReasonCode
    classification: Classification
    risk_score: int = 0
    platform_action: Optional[PlatformAction] = None
    formula: Optional[str] = None
    detections: list[tuple[WatchlistMatch, DetectionType]] = field(default_factory=list)
    record_evidence: bool = True
    track_account: bool = True


@dataclass
class CascadeContext:
    moderation_input: ModerationInput
    signals: Optional[Signals]
    billing_allowed: bool = True
    classification: Optional[Classification] = None
    risk: Optional[RiskScoreResult] = None

    def annotate(self, prefix: str) -> None:
        if self.classification is not None:
            self.classification = self.classification.annotated(prefix)

    def verdict(
        self,
        action: ActionTaken,
        reason: ReasonCode,
        platform_action: Optional[PlatformAction] = None,
        risk_score: Optional[int] = None,
        **kwargs,
    ) -> Verdict:
        """Verdict from the current classification and risk score."""
        return Verdict(
            action=action,
            reason=reason,
            classification=kwargs.pop("classification", None) or self.classification,
            risk_score=risk_score if risk_score is not None else (self.risk.risk_score if self.risk else 0),
            platform_action=platform_action,
            formula=self.risk.formula if self.risk else None,
            **kwargs,
        )


class DecisionEngine:
    def __init__(
        self,
        classifier: Optional[ClassifierService] = None,
        filters: Optional[CustomFilterService] = None,
        whitelist: Optional[WhitelistService] = None,
        suspicious_accounts: Optional[SuspiciousAccountService] = None,
    ) -> None:
        self.classifier = classifier or ClassifierService()
        self.filters = filters or CustomFilterService(llm=self.classifier.llm)
        self.whitelist = whitelist or WhitelistService()
        self.suspicious_accounts = suspicious_accounts or SuspiciousAccountService()

    def decide(self, ctx: CascadeContext) -> Verdict:
        """Run the cascade until a rule returns a verdict."""
        for name in CASCADE_RULES:
            rule: Callable[[CascadeContext], Optional[Verdict]] = getattr(self, f"_rule_{name}")
            verdict = rule(ctx)
            if verdict is not None:
                logger.info(
                    "Moderation verdict %s (%s) for comment %s",
                    verdict.action.value,
                    verdict.reason.value,
                    ctx.moderation_input.comment_id,
                    extra={"comment_id": ctx.moderation_input.comment_id, "reason": verdict.reason.value},
                )
                return verdict
        raise RuntimeError("Cascade ended without a verdict")

    # =========================================================================
    # Early exits
    # =========================================================================

    def _rule_billing_limit(self, ctx: CascadeContext) -> Optional[Verdict]:
        if ctx.billing_allowed:
            return None
        logger.warning(
            "Skipping moderation: comment limit reached for user=%s client=%s",
            ctx.moderation_input.user_id,
            ctx.moderation_input.client_id,
        )
        return Verdict(
            action=ActionTaken.BENIGN,
            reason=ReasonCode.BILLING_LIMIT_REACHED,
            classification=_benign("Moderation skipped: comment moderation limit reached", confidence=0.0),
            record_evidence=False,
            track_account=False,
        )

    def _rule_commenter_whitelisted(self, ctx: CascadeContext) -> Optional[Verdict]:
        if not ctx.signals.commenter_whitelisted:
            return None
        return ctx.verdict(
            ActionTaken.BENIGN,
            ReasonCode.COMMENTER_WHITELISTED,
            classification=_benign("Commenter is whitelisted - moderation bypassed"),
            track_account=False,
        )

    def _rule_post_owner(self, ctx: CascadeContext) -> Optional[Verdict]:
        if not ctx.signals.is_owner:
            return None
        return ctx.verdict(
            ActionTaken.BENIGN,
            ReasonCode.POST_OWNER,
            classification=_benign("Commenter is the post owner (own account) - not moderated"),
            track_account=False,
        )

    def _rule_auto_delete_enabled(self, ctx: CascadeContext) -> Optional[Verdict]:
        record = ctx.signals.suspicious_account
        if record is None or not record.auto_delete_enabled:
            return None
        logger.info("Suspicious account auto-delete: %s", record.commenter_username or record.commenter_id)
        return ctx.verdict(
            ActionTaken.DELETED,
            ReasonCode.AUTO_DELETE_ENABLED,
            PlatformAction.DELETE,
            risk_score=100,
            classification=_benign("Auto-deleted: Commenter has auto-delete enabled", severity=100),
        )

    def _rule_similar_high_confidence(self, ctx: CascadeContext) -> Optional[Verdict]:
        settings = ctx.signals.settings
        auto = ctx.signals.similarity.auto_action
        if not settings.similarity_auto_mod_enabled or auto is None:
            return None
        similarity = auto.match.similarity
        if similarity < settings.similarity_threshold:
            return None

        deleting = auto.action == AutoActionKind.AUTO_DELETE_SIMILAR
        risk = SIMILAR_DELETE_RISK if deleting else SIMILAR_HIDE_RISK
        verb = "Auto-deleted" if deleting else "Auto-hidden"
        classification = _benign(
            f"{verb}: {round(similarity * 100)}% similarity to reviewed pattern "
            f"(threshold {round(settings.similarity_threshold * 100)}%). LLM skipped.",
            severity=risk,
            confidence=similarity,
        )
        if deleting:
            return ctx.verdict(
                ActionTaken.DELETED,
                ReasonCode.AUTO_DELETE_SIMILAR_HIGH_CONFIDENCE,
                PlatformAction.DELETE,
                risk_score=risk,
                classification=classification,
            )
        return ctx.verdict(
            ActionTaken.FLAGGED,
            ReasonCode.AUTO_HIDE_SIMILAR_HIGH_CONFIDENCE,
            PlatformAction.HIDE,
            risk_score=risk,
            classification=classification,
        )

    # =========================================================================
    # Classification and post-classification checks
    # =========================================================================

    def _rule_classify(self, ctx: CascadeContext) -> Optional[Verdict]:
        ctx.classification = self.classifier.classify(
            ctx.moderation_input.comment_text,
            ctx.signals.filters,
            ctx.signals.similarity.allowed,
        )
        return None

    def _rule_watchlist_match(self, ctx: CascadeContext) -> Optional[Verdict]:
        watchlist = ctx.signals.watchlist
        if not watchlist.should_auto_delete:
            return None
        current = ctx.classification
        ctx.classification = current.model_copy(
            update={
                "severity": max(current.severity, WATCHLIST_SEVERITY_FLOOR),
                "confidence": max(current.confidence, WATCHLIST_CONFIDENCE_FLOOR),
                "rationale": f"Auto-deleted: Commenter matches watchlist entry ({watchlist.names}). "
                f"{current.rationale}",
            }
        )
        return ctx.verdict(
            ActionTaken.DELETED,
            ReasonCode.WATCHLIST_MATCH,
            PlatformAction.DELETE,
            risk_score=100,
            detections=[(m, DetectionType.DIRECT_COMMENT) for m in watchlist.matches],
        )

    def _rule_identifier_whitelisted(self, ctx: CascadeContext) -> Optional[Verdict]:
        identifiers = ctx.classification.extracted_identifiers
        if not identifiers:
            return None
        try:
            whitelisted = self.whitelist.is_any_identifier_whitelisted(identifiers, ctx.signals.owner)
        except Exception as e:
            logger.warning("Identifier whitelist lookup failed, treating as not whitelisted: %s", e)
            return None
        if not whitelisted:
            return None
        return ctx.verdict(ActionTaken.BENIGN, ReasonCode.WHITELISTED, risk_score=0)

    def _rule_watchlist_mention(self, ctx: CascadeContext) -> Optional[Verdict]:
        mentions = ctx.signals.mentions
        if not mentions.should_auto_delete:
            return None
        ctx.classification = ctx.classification.model_copy(
            update={"rationale": f"Auto-deleted: Comment mentions watchlist account(s): {mentions.names}"}
        )
        return ctx.verdict(
            ActionTaken.DELETED,
            ReasonCode.WATCHLIST_MENTION,
            PlatformAction.DELETE,
            risk_score=100,
            detections=[(m, DetectionType.USERNAME_MENTION) for m in mentions.matches],
        )

    def _rule_score_risk(self, ctx: CascadeContext) -> Optional[Verdict]:
        repeat_count = 0
        record = ctx.signals.suspicious_account
        if record is not None:
            repeat_count = record.deleted_comments
        elif ctx.moderation_input.instagram_account_id:
            try:
                repeat_count = self.suspicious_accounts.get_repeat_offender_count(
                    ctx.moderation_input.instagram_account_id, ctx.moderation_input.commenter_id
                )
            except Exception as e:
                logger.warning("Repeat offender lookup failed, scoring without history: %s", e)
        ctx.risk = calculate_risk_score(
            severity=ctx.classification.severity,
            confidence=ctx.classification.confidence,
            repeat_offender_count=repeat_count,
        )
        return None

    def _rule_custom_filters(self, ctx: CascadeContext) -> Optional[Verdict]:
        match = self.filters.evaluate(
            ctx.moderation_input.comment_text, ctx.classification, ctx.signals.filters
        )
        if not match.matched:
            return None

        risk = risk_for_match(match)
        if match.deleting:
            names = ", ".join(f.name for f in match.deleting)
            ctx.annotate(f"Auto-deleted by custom filter(s): {names}.")
            return ctx.verdict(
                ActionTaken.DELETED,
                ReasonCode.CUSTOM_FILTER_AUTO_DELETE,
                PlatformAction.DELETE,
                risk_score=risk,
            )
        if match.hiding:
            names = ", ".join(f.name for f in match.hiding)
            ctx.annotate(f"Auto-hidden by custom filter(s): {names}.")
            return ctx.verdict(
                ActionTaken.FLAGGED,
                ReasonCode.CUSTOM_FILTER_AUTO_HIDE,
                PlatformAction.HIDE,
                risk_score=risk,
            )
        if match.flagging:
            ctx.annotate(f"Auto-flagged by custom filter(s): {', '.join(f.name for f in match.flagging)}.")
        return None

    def _rule_confidence_thresholds(self, ctx: CascadeContext) -> Optional[Verdict]:
        classification = ctx.classification
        if classification.category == CommentCategory.BENIGN:
            return None
        settings = ctx.signals.settings
        confidence = classification.confidence
        pct = round(confidence * 100)

        if confidence >= settings.confidence_delete_threshold:
            ctx.annotate(
                f"[CONFIDENCE AUTO-DELETE] LLM confidence {pct}% >= "
                f"{round(settings.confidence_delete_threshold * 100)}% threshold."
            )
            return ctx.verdict(ActionTaken.DELETED, ReasonCode.CONFIDENCE_AUTO_DELETE, PlatformAction.DELETE)
        if confidence >= settings.confidence_hide_threshold:
            ctx.annotate(
                f"[CONFIDENCE AUTO-HIDE] LLM confidence {pct}% >= "
                f"{round(settings.confidence_hide_threshold * 100)}% threshold."
            )
            return ctx.verdict(ActionTaken.FLAGGED, ReasonCode.CONFIDENCE_AUTO_HIDE, PlatformAction.HIDE)
        return None

    def _rule_similar_match(self, ctx: CascadeContext) -> Optional[Verdict]:
        auto = ctx.signals.similarity.auto_action
        if auto is None:
            return None
        pct = round(auto.match.similarity * 100)
        if auto.action == AutoActionKind.AUTO_DELETE_SIMILAR:
            ctx.annotate(f"Auto-deleted based on similarity to reviewed pattern ({pct}% similarity).")
            return ctx.verdict(
                ActionTaken.DELETED, ReasonCode.AUTO_DELETE_SIMILAR_MATCH, PlatformAction.DELETE
            )
        ctx.annotate(f"Auto-hidden based on similarity to reviewed pattern ({pct}% similarity).")
        return ctx.verdict(ActionTaken.FLAGGED, ReasonCode.AUTO_HIDE_SIMILAR_MATCH, PlatformAction.HIDE)

    def _rule_allowed_similar(self, ctx: CascadeContext) -> Optional[Verdict]:
        allowed = ctx.signals.similarity.allowed
        if allowed is None:
            return None
        pct = round(allowed.similarity * 100)
        if ctx.classification.category == CommentCategory.BENIGN:
            ctx.annotate(
                f"Similar to allowed pattern ({pct}% similarity) and validated independently as benign."
            )
            return ctx.verdict(ActionTaken.BENIGN, ReasonCode.ALLOWED_SIMILAR_CONFIRMED, risk_score=0)

        logger.warning(
            "Embeddings suggested allowing but classifier flagged %s; trusting classifier",
            ctx.classification.category.value,
        )
        ctx.annotate(
            f"Similar to allowed pattern ({pct}% similarity) but validated independently as "
            f"{ctx.classification.category.value}. Embeddings false positive."
        )
        return None

    def _rule_category_policy(self, ctx: CascadeContext) -> Optional[Verdict]:
        classification = ctx.classification
        risk = ctx.risk.risk_score
        policy = ctx.signals.settings.policy_for(classification.category)
        record = ctx.signals.suspicious_account

        if record is not None and record.auto_hide_enabled:
            ctx.annotate("Auto-hidden: Commenter has auto-hide enabled.")
            return ctx.verdict(ActionTaken.FLAGGED, ReasonCode.ACCOUNT_AUTO_HIDE, PlatformAction.HIDE)
        if policy.auto_delete and risk >= policy.threshold:
            return ctx.verdict(ActionTaken.DELETED, ReasonCode.CATEGORY_AUTO_DELETE, PlatformAction.DELETE)
        if policy.flag_delete and risk >= policy.flag_delete_threshold:
            return ctx.verdict(ActionTaken.DELETED, ReasonCode.CATEGORY_FLAG_DELETE, PlatformAction.DELETE)
        if policy.flag_hide and risk >= policy.flag_hide_threshold:
            return ctx.verdict(ActionTaken.FLAGGED, ReasonCode.CATEGORY_FLAG_HIDE, PlatformAction.HIDE)
        if classification.category != CommentCategory.BENIGN and risk >= RISK_FLAG_FLOOR:
            return ctx.verdict(ActionTaken.FLAGGED, ReasonCode.RISK_FLAGGED)
        return ctx.verdict(ActionTaken.BENIGN, ReasonCode.CLASSIFIED_BENIGN)
