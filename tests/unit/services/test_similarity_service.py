"""Unit tests for SimilarityService.

Tests:
- parse_embedding()
- get_comment_embedding() reuse, generation and failure
- find_allowed_similar() best match from the pgvector RPC
- find_auto_action_similar() best match and delete tie-break
"""

from unittest.mock import MagicMock

import pytest

from commentguard.models.moderation import AutoActionKind, EmbeddingProviderError
from commentguard.models.owner_config import OwnerScope
from commentguard.services.similarity_service import SimilarityService, parse_embedding


@pytest.fixture
def embeddings() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(mock_supabase, embeddings) -> SimilarityService:
    return SimilarityService(supabase=mock_supabase, embeddings=embeddings)


def _setup_table_router(mock_supabase, table_mocks: dict) -> None:
    """Configure table-specific mock routing."""
    mock_supabase.table.side_effect = lambda name: table_mocks.get(name, MagicMock())


# =============================================================================
# parse_embedding()
# =============================================================================


class TestParseEmbedding:
    """Tests for parse_embedding()."""

    @pytest.mark.unit
    def test_parse_pgvector_string(self) -> None:
        assert parse_embedding("[0.1,0.2]") == [0.1, 0.2]

    @pytest.mark.unit
    def test_parse_invalid(self) -> None:
        assert parse_embedding("nope") is None
        assert parse_embedding(None) is None
        assert parse_embedding([]) is None


# =============================================================================
# get_comment_embedding()
# =============================================================================


class TestGetCommentEmbedding:
    """Tests for get_comment_embedding()."""

    @pytest.mark.unit
    def test_reuses_stored_embedding(self, service, mock_supabase, chain, embeddings) -> None:
        comments = chain([{"embedding": "[0.5,0.5]"}])
        _setup_table_router(mock_supabase, {"comments": comments})

        assert service.get_comment_embedding("c1", "text") == [0.5, 0.5]
        embeddings.embed.assert_not_called()
        comments.update.assert_not_called()

    @pytest.mark.unit
    def test_generates_and_persists(self, service, mock_supabase, chain, embeddings) -> None:
        comments = chain()
        comments.execute.side_effect = [MagicMock(data=[{"embedding": None}]), MagicMock(data=[])]
        _setup_table_router(mock_supabase, {"comments": comments})
        embeddings.embed.return_value = [0.1, 0.9]

        assert service.get_comment_embedding("c1", "text") == [0.1, 0.9]
        comments.update.assert_called_once_with({"embedding": [0.1, 0.9]})

    @pytest.mark.unit
    def test_provider_failure_returns_none(self, service, mock_supabase, chain, embeddings) -> None:
        comments = chain([])
        _setup_table_router(mock_supabase, {"comments": comments})
        embeddings.embed.side_effect = EmbeddingProviderError("down")

        assert service.get_comment_embedding("c1", "text") is None
        comments.update.assert_not_called()


# =============================================================================
# Lookups
# =============================================================================


class TestFindAllowedSimilar:
    """Tests for find_allowed_similar()."""

    @pytest.mark.unit
    def test_best_match_from_rpc(self, service, mock_supabase, chain, owner) -> None:
        matches = chain(
            [
                {
                    "comment_id": "c1",
                    "action": "ALLOW_SIMILAR",
                    "similarity": 0.97,
                    "text": "great!",
                    "commenter_id": "u9",
                },
                {"comment_id": "c2", "action": "ALLOW_SIMILAR", "similarity": 0.71, "text": "meh"},
            ]
        )
        mock_supabase.rpc.return_value = matches
        logs = chain([{"category": "spam"}])
        _setup_table_router(mock_supabase, {"moderation_logs": logs})

        match = service.find_allowed_similar([1.0, 0.0], owner)

        assert match.comment_id == "c1"
        assert match.similarity == 0.97
        assert match.comment_text == "great!"
        assert match.category == "spam"
        mock_supabase.rpc.assert_called_once_with(
            "match_reviewed_comments",
            {
                "p_embedding": [1.0, 0.0],
                "p_reviewed_by_user_id": "user-1",
                "p_reviewed_by_client_id": None,
                "p_actions": ["ALLOW_SIMILAR"],
                "p_min_similarity": 0.6,
                "p_match_count": 5,
            },
        )

    @pytest.mark.unit
    def test_no_rows_returns_none(self, service, mock_supabase, chain, owner) -> None:
        mock_supabase.rpc.return_value = chain([])

        assert service.find_allowed_similar([1.0, 0.0], owner) is None
        mock_supabase.table.assert_not_called()

    @pytest.mark.unit
    def test_empty_owner_returns_none(self, service, mock_supabase) -> None:
        assert service.find_allowed_similar([1.0], OwnerScope()) is None
        mock_supabase.rpc.assert_not_called()

    @pytest.mark.unit
    def test_client_owner_scopes_by_client(self, service, mock_supabase, chain) -> None:
        mock_supabase.rpc.return_value = chain([])

        service.find_allowed_similar([1.0], OwnerScope(user_id="u1", client_id="cl1"), floor=0.8)

        params = mock_supabase.rpc.call_args[0][1]
        assert params["p_reviewed_by_client_id"] == "cl1"
        assert params["p_reviewed_by_user_id"] is None
        assert params["p_min_similarity"] == 0.8


class TestFindAutoActionSimilar:
    """Tests for find_auto_action_similar()."""

    @pytest.mark.unit
    def test_highest_similarity_wins(self, service, mock_supabase, chain, owner) -> None:
        mock_supabase.rpc.return_value = chain(
            [
                {"comment_id": "c1", "action": "AUTO_HIDE_SIMILAR", "similarity": 0.93},
                {"comment_id": "c2", "action": "AUTO_DELETE_SIMILAR", "similarity": 0.81},
            ]
        )
        _setup_table_router(mock_supabase, {"moderation_logs": chain([])})

        result = service.find_auto_action_similar([1.0, 0.0], owner)

        assert result.action == AutoActionKind.AUTO_HIDE_SIMILAR
        assert result.match.comment_id == "c1"
        assert result.match.category is None
        params = mock_supabase.rpc.call_args[0][1]
        assert params["p_actions"] == ["AUTO_DELETE_SIMILAR", "AUTO_HIDE_SIMILAR"]

    @pytest.mark.unit
    def test_tie_prefers_delete(self, service, mock_supabase, chain, owner) -> None:
        mock_supabase.rpc.return_value = chain(
            [
                {"comment_id": "c1", "action": "AUTO_HIDE_SIMILAR", "similarity": 0.9},
                {"comment_id": "c2", "action": "AUTO_DELETE_SIMILAR", "similarity": 0.9},
            ]
        )
        _setup_table_router(mock_supabase, {"moderation_logs": chain([])})

        result = service.find_auto_action_similar([1.0, 0.0], owner)

        assert result.action == AutoActionKind.AUTO_DELETE_SIMILAR
        assert result.match.comment_id == "c2"

    @pytest.mark.unit
    def test_no_rows_returns_none(self, service, mock_supabase, chain, owner) -> None:
        mock_supabase.rpc.return_value = chain(None)

        assert service.find_auto_action_similar([1.0, 0.0], owner) is None
