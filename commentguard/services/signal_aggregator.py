"""
Pre-classification signals, gathered concurrently.

Each source runs in a worker thread; a failing source is logged and replaced
by its safe default so one outage never blocks the rest of the pipeline.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TypeVar

from commentguard.models.moderation import AutoActionMatch, ModerationInput, SimilarityMatch
from commentguard.models.moderation_settings import ModerationSettingsResult
from commentguard.models.owner_config import CustomFilter, OwnerScope, WatchlistCheckResult
from commentguard.models.suspicious_account import SuspiciousAccountRecord
from commentguard.services.account_service import AccountService
from commentguard.services.custom_filter_service import CustomFilterService
from commentguard.services.settings_resolver import SettingsResolver
from commentguard.services.similarity_service import SimilarityService
from commentguard.services.suspicious_account_service import SuspiciousAccountService
from commentguard.services.watchlist_service import WatchlistService
from commentguard.services.whitelist_service import WhitelistService

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SimilarityContext:
    allowed: Optional[SimilarityMatch] = None
    auto_action: Optional[AutoActionMatch] = None


@dataclass
class Signals:
    owner: OwnerScope
    settings: ModerationSettingsResult
    commenter_whitelisted: bool = False
    is_owner: bool = False
    suspicious_account: Optional[SuspiciousAccountRecord] = None
    watchlist: WatchlistCheckResult = field(default_factory=WatchlistCheckResult)
    mentions: WatchlistCheckResult = field(default_factory=WatchlistCheckResult)
    filters: list[CustomFilter] = field(default_factory=list)
    similarity: SimilarityContext = field(default_factory=SimilarityContext)


def _safe(name: str, default: T, fn: Callable[..., T], *args: Any) -> T:
    """Run one signal source (sync, for thread execution)."""
    try:
        return fn(*args)
    except Exception as e:
        logger.warning("Signal source '%s' failed, using default: %s", name, e)
        return default


class SignalAggregator:
    def __init__(
        self,
        whitelist: Optional[WhitelistService] = None,
        accounts: Optional[AccountService] = None,
        suspicious_accounts: Optional[SuspiciousAccountService] = None,
        watchlist: Optional[WatchlistService] = None,
        filters: Optional[CustomFilterService] = None,
        similarity: Optional[SimilarityService] = None,
        settings: Optional[SettingsResolver] = None,
    ) -> None:
        self.whitelist = whitelist or WhitelistService()
        self.accounts = accounts or AccountService()
        self.suspicious_accounts = suspicious_accounts or SuspiciousAccountService()
        self.watchlist = watchlist or WatchlistService()
        self.filters = filters or CustomFilterService()
        self.similarity = similarity or SimilarityService()
        self.settings = settings or SettingsResolver()

    def _find_suspicious(self, moderation_input: ModerationInput) -> Optional[SuspiciousAccountRecord]:
        if not moderation_input.instagram_account_id:
            return None
        return self.suspicious_accounts.find(
            moderation_input.instagram_account_id,
            moderation_input.commenter_id,
            moderation_input.commenter_username,
        )

    def _similarity(self, moderation_input: ModerationInput, owner: OwnerScope) -> SimilarityContext:
        if owner.is_empty:
            return SimilarityContext()
        embedding = self.similarity.get_comment_embedding(
            moderation_input.comment_id, moderation_input.comment_text
        )
        if embedding is None:
            return SimilarityContext()
        return SimilarityContext(
            allowed=self.similarity.find_allowed_similar(embedding, owner),
            auto_action=self.similarity.find_auto_action_similar(embedding, owner),
        )

    async def gather(self, moderation_input: ModerationInput) -> Signals:
        owner = await asyncio.to_thread(
            _safe,
            "owner",
            OwnerScope(user_id=moderation_input.user_id, client_id=moderation_input.client_id),
            self.settings.resolve_effective_owner,
            moderation_input,
        )
        account_id = moderation_input.instagram_account_id

        (
            whitelisted,
            is_owner,
            suspicious,
            watchlist,
            mentions,
            filters,
            similarity,
            settings,
        ) = await asyncio.gather(
            asyncio.to_thread(
                _safe,
                "whitelist",
                False,
                self.whitelist.is_commenter_whitelisted,
                moderation_input.commenter_id,
                moderation_input.commenter_username,
                account_id,
                owner,
            ),
            asyncio.to_thread(_safe, "owner_check", False, self.accounts.is_commenter_owner, moderation_input),
            asyncio.to_thread(_safe, "suspicious_account", None, self._find_suspicious, moderation_input),
            asyncio.to_thread(
                _safe,
                "watchlist",
                WatchlistCheckResult(),
                self.watchlist.check_commenter,
                moderation_input.commenter_username,
                moderation_input.commenter_id,
                owner,
            ),
            asyncio.to_thread(
                _safe,
                "watchlist_mentions",
                WatchlistCheckResult(),
                self.watchlist.check_mentions,
                moderation_input.comment_text,
                owner,
            ),
            asyncio.to_thread(_safe, "custom_filters", [], self.filters.load_filters, owner, account_id),
            asyncio.to_thread(
                _safe, "similarity", SimilarityContext(), self._similarity, moderation_input, owner
            ),
            asyncio.to_thread(
                _safe,
                "settings",
                ModerationSettingsResult.defaults(),
                self.settings.resolve,
                owner,
                account_id,
            ),
        )

        return Signals(
            owner=owner,
            settings=settings,
            commenter_whitelisted=whitelisted,
            is_owner=is_owner,
            suspicious_account=suspicious,
            watchlist=watchlist,
            mentions=mentions,
            filters=filters,
            similarity=similarity,
        )
