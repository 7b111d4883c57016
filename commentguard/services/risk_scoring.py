"""
Risk scoring.

Pure function combining classification severity and confidence with the
commenter's history into a 0-100 score.
"""

from commentguard.core.constants import (
    ESTABLISHED_ACCOUNT_AGE_DAYS,
    ESTABLISHED_ACCOUNT_PENALTY,
    REPEAT_OFFENDER_BONUS_CAP,
    REPEAT_OFFENDER_BONUS_PER_COUNT,
    RISK_SHOULD_DELETE,
    RISK_SHOULD_ESCALATE,
    VELOCITY_BONUS,
    VELOCITY_THRESHOLD,
)
from commentguard.models.moderation import RiskScoreResult


def calculate_risk_score(
    severity: int,
    confidence: float,
    repeat_offender_count: int = 0,
    comment_velocity: int = 0,
    account_age_days: int = 0,
) -> RiskScoreResult:
    """
    Score a classified comment.

    base = severity * confidence, plus a capped repeat-offender bonus and a
    velocity bonus, minus a small penalty for long-established commenters.
    Monotonically non-decreasing in severity, confidence and
    repeat_offender_count. Always clamped to [0, 100].
    """
    base = max(0, severity) * max(0.0, confidence)
    repeat_bonus = min(max(0, repeat_offender_count) * REPEAT_OFFENDER_BONUS_PER_COUNT, REPEAT_OFFENDER_BONUS_CAP)
    velocity_bonus = VELOCITY_BONUS if comment_velocity > VELOCITY_THRESHOLD else 0
    age_penalty = ESTABLISHED_ACCOUNT_PENALTY if account_age_days > ESTABLISHED_ACCOUNT_AGE_DAYS else 0

    raw = base + repeat_bonus + velocity_bonus + age_penalty
    risk_score = int(round(max(0.0, min(100.0, raw))))

    formula = (
        f"risk_score = clamp({severity} * {confidence:.2f} + {repeat_bonus} "
        f"+ {velocity_bonus} + ({age_penalty}), 0, 100) = {risk_score}"
    )

    return RiskScoreResult(
        risk_score=risk_score,
        base_score=round(base, 2),
        repeat_offender_bonus=repeat_bonus,
        velocity_bonus=velocity_bonus,
        account_age_penalty=age_penalty,
        should_delete=risk_score >= RISK_SHOULD_DELETE,
        should_escalate=risk_score >= RISK_SHOULD_ESCALATE,
        formula=formula,
    )
