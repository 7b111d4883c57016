"""
Classifier adapter.

Wraps the LLM provider with two safety nets:
- re-evaluation when the regex second opinion disagrees with the model
- category validation, with one delayed retry before defaulting to benign
"""

import logging
import time
from typing import Callable, Optional

from commentguard.core.constants import (
    BLACKMAIL_OVERRIDE_CONFIDENCE,
    BLACKMAIL_OVERRIDE_SEVERITY,
    INVALID_CATEGORY_RETRY_DELAY_SECONDS,
)
from commentguard.models.moderation import (
    Classification,
    ClassificationProviderError,
    CommentCategory,
    PatternResult,
    RawClassification,
    SimilarityMatch,
)
from commentguard.models.owner_config import CustomFilter
from commentguard.services.llm_service import LLMService
from commentguard.services.pattern_detector import detect_patterns

logger = logging.getLogger(__name__)


class ClassifierService:
    def __init__(
        self,
        llm: Optional[LLMService] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.llm = llm or LLMService()
        self._sleep = sleep

    def classify(
        self,
        text: str,
        filters: Optional[list[CustomFilter]] = None,
        similarity: Optional[SimilarityMatch] = None,
    ) -> Classification:
        """
        Classify a comment into the fixed taxonomy.

        Raises:
            ClassificationProviderError: the first classification call failed
        """
        pattern = detect_patterns(text)
        raw = self.llm.classify(text, filters, similarity)
        raw = self._re_evaluate_if_needed(text, raw, pattern)
        return self._validate_category(text, raw, filters, similarity)

    def _re_evaluate_if_needed(
        self, text: str, raw: RawClassification, pattern: PatternResult
    ) -> RawClassification:
        suspected = pattern.category
        if suspected is None or raw.category == suspected.value:
            return raw

        if raw.category != CommentCategory.BENIGN.value and suspected != CommentCategory.BLACKMAIL:
            logger.info(
                "Pattern suggests %s but classifier said %s; trusting classifier",
                suspected.value,
                raw.category,
            )
            return raw

        logger.warning(
            "Pattern mismatch: detected %s, classifier said %s; re-evaluating",
            suspected.value,
            raw.category,
        )
        try:
            second = self.llm.re_evaluate(text, suspected, pattern.details)
        except ClassificationProviderError as e:
            logger.error("Re-evaluation failed: %s", e)
            if suspected == CommentCategory.BLACKMAIL:
                return self._blackmail_override(raw, raw, "Re-evaluation failed.")
            return raw

        if second.category == suspected.value:
            return second.model_copy(
                update={
                    "rationale": f"[RE-EVALUATION] Confirmed {suspected.value}. "
                    f"Original: {raw.rationale}"
                }
            )

        if suspected == CommentCategory.BLACKMAIL:
            return self._blackmail_override(raw, second, f"Re-eval: {second.category}.")

        return raw.model_copy(
            update={
                "rationale": f"[RE-EVALUATION] Pattern suggested {suspected.value}, "
                f"re-evaluation said {second.category}; kept original. {raw.rationale}"
            }
        )

    @staticmethod
    def _blackmail_override(
        original: RawClassification, second: RawClassification, note: str
    ) -> RawClassification:
        logger.warning("Overriding classification to blackmail based on pattern detection")
        return original.model_copy(
            update={
                "category": CommentCategory.BLACKMAIL.value,
                "severity": max(second.severity, BLACKMAIL_OVERRIDE_SEVERITY),
                "confidence": max(second.confidence, BLACKMAIL_OVERRIDE_CONFIDENCE),
                "rationale": f"[PATTERN OVERRIDE] Blackmail pattern detected. {note} "
                f"Original: {original.rationale}",
            }
        )

    def _validate_category(
        self,
        text: str,
        raw: RawClassification,
        filters: Optional[list[CustomFilter]],
        similarity: Optional[SimilarityMatch],
    ) -> Classification:
        if raw.has_valid_category:
            return raw.to_classification()

        logger.error("Classifier returned invalid category %r; retrying once", raw.category)
        self._sleep(INVALID_CATEGORY_RETRY_DELAY_SECONDS)
        retry = self.llm.classify(text, filters, similarity)
        if retry.has_valid_category:
            return retry.to_classification()

        logger.error("Still invalid after retry (%r); defaulting to benign", retry.category)
        fallback = retry.to_classification(category=CommentCategory.BENIGN)
        return fallback.model_copy(
            update={
                "rationale": f"Invalid category from LLM - defaulted to benign. "
                f"Original: {retry.rationale}"
            }
        )
