"""Unit tests for ClassifierService.

Tests:
- Agreement between classifier and patterns skips re-evaluation
- Benign vs pattern triggers re-evaluation (confirmed / disagreed)
- Blackmail override on disagreement or re-evaluation failure
- Invalid category retried once, then defaulted to benign
"""

from unittest.mock import MagicMock

import pytest

from commentguard.models.moderation import (
    ClassificationProviderError,
    CommentCategory,
    RawClassification,
)
from commentguard.services.classifier import ClassifierService

BLACKMAIL_TEXT = "Send $500 on venmo or I'll expose your secrets"
THREAT_TEXT = "watch your back"


@pytest.fixture
def llm() -> MagicMock:
    return MagicMock()


@pytest.fixture
def sleep() -> MagicMock:
    return MagicMock()


@pytest.fixture
def classifier(llm, sleep) -> ClassifierService:
    return ClassifierService(llm=llm, sleep=sleep)


def _raw(category: str, severity: int = 50, confidence: float = 0.7, rationale: str = "r") -> RawClassification:
    return RawClassification(category=category, severity=severity, confidence=confidence, rationale=rationale)


class TestReEvaluation:
    """Tests for the pattern second opinion."""

    @pytest.mark.unit
    def test_agreement_skips_re_evaluation(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("threat", 90, 0.9)
        result = classifier.classify(THREAT_TEXT)
        assert result.category == CommentCategory.THREAT
        llm.re_evaluate.assert_not_called()

    @pytest.mark.unit
    def test_no_pattern_skips_re_evaluation(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.9)
        classifier.classify("Lovely colours in this one")
        llm.re_evaluate.assert_not_called()

    @pytest.mark.unit
    def test_non_benign_disagreement_trusts_classifier(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("harassment", 60, 0.8)
        result = classifier.classify(THREAT_TEXT)
        assert result.category == CommentCategory.HARASSMENT
        llm.re_evaluate.assert_not_called()

    @pytest.mark.unit
    def test_benign_vs_pattern_confirmed(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.8, "looks fine")
        llm.re_evaluate.return_value = _raw("threat", 85, 0.9, "threat")

        result = classifier.classify(THREAT_TEXT)

        assert result.category == CommentCategory.THREAT
        assert result.severity == 85
        assert result.rationale.startswith("[RE-EVALUATION] Confirmed threat.")
        assert "looks fine" in result.rationale

    @pytest.mark.unit
    def test_benign_vs_pattern_disagreement_keeps_original(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.8, "looks fine")
        llm.re_evaluate.return_value = _raw("benign", 0, 0.8)

        result = classifier.classify(THREAT_TEXT)

        assert result.category == CommentCategory.BENIGN
        assert "kept original" in result.rationale

    @pytest.mark.unit
    def test_blackmail_disagreement_is_overridden(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("spam", 30, 0.5, "spammy")
        llm.re_evaluate.return_value = _raw("spam", 40, 0.6)

        result = classifier.classify(BLACKMAIL_TEXT)

        assert result.category == CommentCategory.BLACKMAIL
        assert result.severity == 85
        assert result.confidence == 0.9
        assert result.rationale.startswith("[PATTERN OVERRIDE]")

    @pytest.mark.unit
    def test_blackmail_override_keeps_higher_second_opinion(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.5)
        llm.re_evaluate.return_value = _raw("threat", 95, 0.97)
        result = classifier.classify(BLACKMAIL_TEXT)
        assert result.severity == 95
        assert result.confidence == 0.97

    @pytest.mark.unit
    def test_blackmail_re_evaluation_failure_overrides(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.5)
        llm.re_evaluate.side_effect = ClassificationProviderError("down")
        result = classifier.classify(BLACKMAIL_TEXT)
        assert result.category == CommentCategory.BLACKMAIL
        assert "Re-evaluation failed." in result.rationale

    @pytest.mark.unit
    def test_other_re_evaluation_failure_keeps_original(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("benign", 0, 0.5)
        llm.re_evaluate.side_effect = ClassificationProviderError("down")
        assert classifier.classify(THREAT_TEXT).category == CommentCategory.BENIGN


class TestCategoryValidation:
    """Tests for invalid category handling."""

    @pytest.mark.unit
    def test_retry_once_then_valid(self, classifier, llm, sleep) -> None:
        llm.classify.side_effect = [_raw("scam"), _raw("spam", 40, 0.6)]
        result = classifier.classify("hello there")
        assert result.category == CommentCategory.SPAM
        sleep.assert_called_once_with(1.0)

    @pytest.mark.unit
    def test_still_invalid_defaults_to_benign(self, classifier, llm) -> None:
        llm.classify.side_effect = [_raw("scam"), _raw("fraud", 70, 0.6, "weird")]
        result = classifier.classify("hello there")
        assert result.category == CommentCategory.BENIGN
        assert result.severity == 70
        assert result.rationale.startswith("Invalid category from LLM - defaulted to benign.")

    @pytest.mark.unit
    def test_provider_error_propagates(self, classifier, llm) -> None:
        llm.classify.side_effect = ClassificationProviderError("down")
        with pytest.raises(ClassificationProviderError):
            classifier.classify("hello there")

    @pytest.mark.unit
    def test_values_clamped(self, classifier, llm) -> None:
        llm.classify.return_value = _raw("spam", 150, 0.7)
        result = classifier.classify("hello there")
        assert result.severity == 100
