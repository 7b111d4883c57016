"""
Nearest-neighbour lookups against comments a human has already reviewed.

Two corpora, both owner-scoped through comment_review_actions:
- ALLOW_SIMILAR: comments the owner chose to keep
- AUTO_HIDE_SIMILAR / AUTO_DELETE_SIMILAR: comments whose look-alikes
  should receive a predetermined action

The search runs in Postgres through the match_reviewed_comments RPC
(pgvector, 1 - (embedding <=> target)). It returns rows of
comment_id, action, similarity, text, commenter_id and commenter_username,
ordered by similarity, keeping only rows at or above the review action's
own similarity_threshold, or the floor when it has none.
"""

import json
import logging
from typing import Any, Optional

from supabase import Client

from commentguard.core.constants import SIMILARITY_FLOOR, SIMILARITY_MATCH_COUNT
from commentguard.core.database import get_supabase
from commentguard.models.moderation import (
    AutoActionKind,
    AutoActionMatch,
    EmbeddingProviderError,
    SimilarityMatch,
)
from commentguard.models.owner_config import OwnerScope
from commentguard.services.embeddings_service import EmbeddingsService

logger = logging.getLogger(__name__)

ALLOW_SIMILAR = "ALLOW_SIMILAR"
_AUTO_ACTIONS = [AutoActionKind.AUTO_DELETE_SIMILAR.value, AutoActionKind.AUTO_HIDE_SIMILAR.value]


def parse_embedding(value: Any) -> Optional[list[float]]:
    """pgvector columns come back as '[0.1,0.2,...]' strings through PostgREST."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, list) and value:
        return [float(x) for x in value]
    return None


class SimilarityService:
    def __init__(
        self,
        supabase: Optional[Client] = None,
        embeddings: Optional[EmbeddingsService] = None,
    ) -> None:
        self._supabase = supabase
        self.embeddings = embeddings or EmbeddingsService()

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def get_comment_embedding(self, comment_id: str, text: str) -> Optional[list[float]]:
        """Stored embedding for the comment, generating and persisting one if missing.

        Returns None when no embedding could be produced.
        """
        existing = (
            self.supabase.table("comments").select("embedding").eq("id", comment_id).limit(1).execute()
        )
        if existing.data:
            stored = parse_embedding(existing.data[0].get("embedding"))
            if stored:
                return stored

        try:
            vector = self.embeddings.embed(text)
        except EmbeddingProviderError as e:
            logger.warning("Embedding generation failed for comment %s: %s", comment_id, e)
            return None

        self.supabase.table("comments").update({"embedding": vector}).eq("id", comment_id).execute()
        return vector

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _match(
        self, embedding: list[float], owner: OwnerScope, actions: list[str], floor: float
    ) -> list[dict]:
        if owner.is_empty:
            return []
        column, value = owner.column()
        result = self.supabase.rpc(
            "match_reviewed_comments",
            {
                "p_embedding": embedding,
                "p_reviewed_by_user_id": value if column == "user_id" else None,
                "p_reviewed_by_client_id": value if column == "client_id" else None,
                "p_actions": actions,
                "p_min_similarity": floor,
                "p_match_count": SIMILARITY_MATCH_COUNT,
            },
        ).execute()
        return result.data or []

    def _latest_category(self, comment_id: str) -> Optional[str]:
        result = (
            self.supabase.table("moderation_logs")
            .select("category")
            .eq("comment_id", comment_id)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return result.data[0]["category"] if result.data else None

    def _to_match(self, row: dict) -> SimilarityMatch:
        return SimilarityMatch(
            comment_id=row["comment_id"],
            similarity=round(float(row["similarity"]), 4),
            comment_text=row.get("text") or "",
            commenter_id=row.get("commenter_id"),
            commenter_username=row.get("commenter_username"),
            category=self._latest_category(row["comment_id"]),
        )

    def find_allowed_similar(
        self, embedding: list[float], owner: OwnerScope, floor: float = SIMILARITY_FLOOR
    ) -> Optional[SimilarityMatch]:
        rows = self._match(embedding, owner, [ALLOW_SIMILAR], floor)
        if not rows:
            return None
        best = max(rows, key=lambda row: float(row["similarity"]))
        logger.info("Comment similar to allowed pattern (%.0f%%)", float(best["similarity"]) * 100)
        return self._to_match(best)

    def find_auto_action_similar(
        self, embedding: list[float], owner: OwnerScope, floor: float = SIMILARITY_FLOOR
    ) -> Optional[AutoActionMatch]:
        """Best auto-action match. Equal similarity prefers delete over hide."""
        rows = self._match(embedding, owner, _AUTO_ACTIONS, floor)
        if not rows:
            return None
        best = max(
            rows,
            key=lambda row: (
                float(row["similarity"]),
                row["action"] == AutoActionKind.AUTO_DELETE_SIMILAR.value,
            ),
        )
        logger.info(
            "Comment matches auto-action pattern %s (%.0f%%)", best["action"], float(best["similarity"]) * 100
        )
        return AutoActionMatch(action=AutoActionKind(best["action"]), match=self._to_match(best))
