"""Unit tests for calculate_risk_score().

Tests:
- Base score, bonuses and penalty
- Clamping to [0, 100]
- should_delete / should_escalate thresholds
- Monotonicity in severity, confidence and repeat count
"""

import pytest

from commentguard.services.risk_scoring import calculate_risk_score


class TestCalculateRiskScore:
    """Tests for calculate_risk_score()."""

    @pytest.mark.unit
    def test_base_score_only(self) -> None:
        result = calculate_risk_score(severity=80, confidence=0.5)
        assert result.risk_score == 40
        assert result.base_score == 40.0
        assert result.repeat_offender_bonus == 0
        assert result.should_delete is False

    @pytest.mark.unit
    def test_repeat_offender_bonus_is_capped(self) -> None:
        result = calculate_risk_score(severity=10, confidence=1.0, repeat_offender_count=7)
        assert result.repeat_offender_bonus == 30
        assert result.risk_score == 40

    @pytest.mark.unit
    def test_velocity_bonus_above_threshold(self) -> None:
        assert calculate_risk_score(50, 1.0, comment_velocity=5).velocity_bonus == 0
        assert calculate_risk_score(50, 1.0, comment_velocity=6).velocity_bonus == 20

    @pytest.mark.unit
    def test_established_account_penalty(self) -> None:
        result = calculate_risk_score(50, 1.0, account_age_days=400)
        assert result.account_age_penalty == -10
        assert result.risk_score == 40

    @pytest.mark.unit
    def test_clamped_to_100(self) -> None:
        result = calculate_risk_score(100, 1.0, repeat_offender_count=5, comment_velocity=10)
        assert result.risk_score == 100
        assert result.should_delete is True
        assert result.should_escalate is True

    @pytest.mark.unit
    def test_clamped_to_zero(self) -> None:
        result = calculate_risk_score(0, 0.0, account_age_days=1000)
        assert result.risk_score == 0

    @pytest.mark.unit
    def test_delete_and_escalate_thresholds(self) -> None:
        at_70 = calculate_risk_score(70, 1.0)
        assert at_70.should_delete is True
        assert at_70.should_escalate is False
        assert calculate_risk_score(85, 1.0).should_escalate is True

    @pytest.mark.unit
    def test_formula_mentions_inputs_and_result(self) -> None:
        result = calculate_risk_score(90, 0.8, repeat_offender_count=1)
        assert "90 * 0.80" in result.formula
        assert result.formula.endswith(f"= {result.risk_score}")

    @pytest.mark.unit
    def test_monotonic_in_inputs(self) -> None:
        low = calculate_risk_score(40, 0.5, repeat_offender_count=0).risk_score
        assert calculate_risk_score(60, 0.5).risk_score >= low
        assert calculate_risk_score(40, 0.9).risk_score >= low
        assert calculate_risk_score(40, 0.5, repeat_offender_count=2).risk_score >= low
