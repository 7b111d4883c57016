"""Unit tests for SignalAggregator.

Tests:
- gather() assembles every signal with the effective owner
- A failing source is replaced by its default
- Similarity skipped without embedding or owner
- Suspicious account lookup needs an Instagram account
"""

from unittest.mock import MagicMock

import pytest

from commentguard.models.moderation import SimilarityMatch
from commentguard.models.moderation_settings import ModerationSettingsResult
from commentguard.models.owner_config import CustomFilter, OwnerScope, WatchlistCheckResult, WatchlistMatch
from commentguard.services.signal_aggregator import SignalAggregator


@pytest.fixture
def sources() -> dict[str, MagicMock]:
    settings = MagicMock()
    settings.resolve_effective_owner.return_value = OwnerScope(client_id="client-9")
    settings.resolve.return_value = ModerationSettingsResult.defaults()
    whitelist = MagicMock()
    whitelist.is_commenter_whitelisted.return_value = False
    accounts = MagicMock()
    accounts.is_commenter_owner.return_value = False
    suspicious = MagicMock()
    suspicious.find.return_value = None
    watchlist = MagicMock()
    watchlist.check_commenter.return_value = WatchlistCheckResult()
    watchlist.check_mentions.return_value = WatchlistCheckResult(
        matches=[WatchlistMatch(threat_id="t1", name="stalker")]
    )
    filters = MagicMock()
    filters.load_filters.return_value = [CustomFilter(id="f1", name="x")]
    similarity = MagicMock()
    similarity.get_comment_embedding.return_value = [0.1, 0.2]
    similarity.find_allowed_similar.return_value = SimilarityMatch(comment_id="c0", similarity=0.9)
    similarity.find_auto_action_similar.return_value = None
    return {
        "settings": settings,
        "whitelist": whitelist,
        "accounts": accounts,
        "suspicious_accounts": suspicious,
        "watchlist": watchlist,
        "filters": filters,
        "similarity": similarity,
    }


@pytest.fixture
def aggregator(sources) -> SignalAggregator:
    return SignalAggregator(**sources)


class TestGather:
    """Tests for gather()."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_assembles_signals(self, aggregator, sources, make_input) -> None:
        signals = await aggregator.gather(make_input(client_id="client-1"))

        effective = OwnerScope(client_id="client-9")
        assert signals.owner == effective
        assert signals.settings.source == "defaults"
        assert signals.mentions.names == "stalker"
        assert [f.id for f in signals.filters] == ["f1"]
        assert signals.similarity.allowed.comment_id == "c0"
        assert signals.similarity.auto_action is None
        sources["whitelist"].is_commenter_whitelisted.assert_called_once_with(
            "commenter-1", "someone", "ig-account-1", effective
        )
        sources["settings"].resolve.assert_called_once_with(effective, "ig-account-1")
        sources["filters"].load_filters.assert_called_once_with(effective, "ig-account-1")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_source_uses_default(self, aggregator, sources, make_input) -> None:
        sources["whitelist"].is_commenter_whitelisted.side_effect = RuntimeError("db down")
        sources["settings"].resolve.side_effect = RuntimeError("db down")
        sources["filters"].load_filters.side_effect = RuntimeError("db down")

        signals = await aggregator.gather(make_input())

        assert signals.commenter_whitelisted is False
        assert signals.settings.source == "defaults"
        assert signals.filters == []
        assert signals.mentions.is_match is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_owner_resolution_failure_uses_supplied(self, aggregator, sources, make_input) -> None:
        sources["settings"].resolve_effective_owner.side_effect = RuntimeError("boom")
        signals = await aggregator.gather(make_input())
        assert signals.owner == OwnerScope(user_id="user-1")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_embedding_skips_similarity(self, aggregator, sources, make_input) -> None:
        sources["similarity"].get_comment_embedding.return_value = None

        signals = await aggregator.gather(make_input())

        assert signals.similarity.allowed is None
        sources["similarity"].find_allowed_similar.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_facebook_comment_skips_suspicious_lookup(self, aggregator, sources, make_input) -> None:
        signals = await aggregator.gather(make_input(instagram_account_id=None, facebook_page_id="fp-1"))

        assert signals.suspicious_account is None
        sources["suspicious_accounts"].find.assert_not_called()
