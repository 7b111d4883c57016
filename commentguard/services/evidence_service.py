"""
Audit trail for moderation decisions.

Each terminal decision writes a moderation_logs row and an evidence_records
row pointing at it. Identifiers the classifier pulled out of the comment are
stored with a normalized form so they can be matched across commenters.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from commentguard.core.config import get_settings
from commentguard.core.database import get_supabase
from commentguard.models.moderation import (
    ActionTaken,
    Classification,
    ExtractedIdentifier,
    ModerationInput,
)

logger = logging.getLogger(__name__)

_NORMALIZE_STRIP = re.compile(r"[@.\-_\s()\[\]{}]")


def normalize_identifier(value: str) -> str:
    return _NORMALIZE_STRIP.sub("", (value or "").lower())


class EvidenceService:
    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def record(
        self,
        moderation_input: ModerationInput,
        classification: Classification,
        risk_score: int,
        action: ActionTaken,
        formula: Optional[str] = None,
        degraded: bool = False,
    ) -> Optional[str]:
        """Write the moderation log and its evidence record. Returns the log ID."""
        log = (
            self.supabase.table("moderation_logs")
            .insert(
                {
                    "comment_id": moderation_input.comment_id,
                    "category": classification.category.value,
                    "severity": classification.severity,
                    "confidence": classification.confidence,
                    "rationale": classification.rationale,
                    "risk_score": risk_score,
                    "risk_formula": formula,
                    "model_name": get_settings().groq_model,
                    "action_taken": action.value,
                    "action_timestamp": datetime.now(timezone.utc).isoformat(),
                    "is_degraded_mode": degraded,
                }
            )
            .execute()
        )
        log_id = log.data[0]["id"] if log.data else None

        self.supabase.table("evidence_records").insert(
            {
                "moderation_log_id": log_id,
                "raw_comment": moderation_input.comment_text,
                "raw_commenter_username": moderation_input.commenter_username,
                "raw_commenter_id": moderation_input.commenter_id,
                "llm_response_json": json.dumps(classification.model_dump(mode="json")),
                "formula_used": formula or f"risk_score = {risk_score}",
                "deletion_confirmed": action == ActionTaken.DELETED,
            }
        ).execute()
        return log_id

    def record_identifiers(
        self,
        comment_id: str,
        suspicious_account_id: str,
        identifiers: list[ExtractedIdentifier],
        confidence: float,
    ) -> int:
        rows = [
            {
                "comment_id": comment_id,
                "suspicious_account_id": suspicious_account_id,
                "identifier": identifier.value,
                "identifier_type": identifier.type.value,
                "platform": identifier.platform,
                "normalized_identifier": normalize_identifier(identifier.value),
                "confidence": confidence,
                "source": "llm_extraction",
            }
            for identifier in identifiers
            if identifier.value.strip()
        ]
        if rows:
            self.supabase.table("extracted_identifiers").insert(rows).execute()
            logger.info("Stored %d identifier(s) for suspicious account %s", len(rows), suspicious_account_id)
        return len(rows)
