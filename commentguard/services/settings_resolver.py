"""
Moderation settings resolution.

Lookup order, first row found wins:
1. account-specific row for this owner
2. agency rule for a managed client (row owned by the agency user with
   managed_client_id set and no account)
3. global row for this owner
4. hardcoded defaults

The resolved result is cached per owner and account for a short TTL.
"""

import logging
from typing import Any, Optional

from supabase import Client

from commentguard.core.cache import CacheKeys, cache_delete_pattern, cache_get, cache_set
from commentguard.core.constants import SETTINGS_CACHE_TTL_SECONDS
from commentguard.core.database import get_supabase
from commentguard.models.moderation import ModerationInput
from commentguard.models.moderation_settings import ModerationSettingsResult
from commentguard.models.owner_config import OwnerScope

logger = logging.getLogger(__name__)


class SettingsResolver:
    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    # =========================================================================
    # Owner resolution
    # =========================================================================

    def resolve_effective_owner(self, moderation_input: ModerationInput) -> OwnerScope:
        """
        Owner whose configuration applies to this comment.

        When both user_id and client_id are supplied for an Instagram account,
        the account record decides: a shared account may be owned by either.
        """
        owner = OwnerScope(user_id=moderation_input.user_id, client_id=moderation_input.client_id)
        if not (owner.user_id and owner.client_id and moderation_input.instagram_account_id):
            return owner

        try:
            result = (
                self.supabase.table("instagram_accounts")
                .select("user_id, client_id")
                .eq("id", moderation_input.instagram_account_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning("Could not resolve account owner, using supplied owner: %s", e)
            return owner

        if not result.data:
            return owner
        row = result.data[0]
        if row.get("client_id"):
            return OwnerScope(client_id=row["client_id"])
        if row.get("user_id"):
            return OwnerScope(user_id=row["user_id"])
        return owner

    # =========================================================================
    # Settings
    # =========================================================================

    def _first(self, query: Any) -> Optional[dict[str, Any]]:
        result = query.limit(1).execute()
        return result.data[0] if result.data else None

    def _account_row(self, owner: OwnerScope, account_id: str) -> Optional[dict[str, Any]]:
        column, value = owner.column()
        return self._first(
            self.supabase.table("moderation_settings")
            .select("*")
            .eq(column, value)
            .eq("instagram_account_id", account_id)
            .is_("managed_client_id", "null")
        )

    def _agency_row(self, client_id: str) -> Optional[dict[str, Any]]:
        agency = self._first(self.supabase.table("clients").select("user_id").eq("id", client_id))
        if not agency or not agency.get("user_id"):
            return None
        return self._first(
            self.supabase.table("moderation_settings")
            .select("*")
            .eq("user_id", agency["user_id"])
            .eq("managed_client_id", client_id)
            .is_("instagram_account_id", "null")
        )

    def _global_row(self, owner: OwnerScope) -> Optional[dict[str, Any]]:
        column, value = owner.column()
        return self._first(
            self.supabase.table("moderation_settings")
            .select("*")
            .eq(column, value)
            .is_("instagram_account_id", "null")
            .is_("managed_client_id", "null")
        )

    def _lookup(self, owner: OwnerScope, account_id: Optional[str]) -> ModerationSettingsResult:
        if account_id:
            row = self._account_row(owner, account_id)
            if row:
                return ModerationSettingsResult.from_row(row, source="account")

        if owner.client_id:
            row = self._agency_row(owner.client_id)
            if row:
                return ModerationSettingsResult.from_row(row, source="agency_rule")

        row = self._global_row(owner)
        if row:
            return ModerationSettingsResult.from_row(row, source="global")
        return ModerationSettingsResult.defaults()

    def resolve(self, owner: OwnerScope, account_id: Optional[str] = None) -> ModerationSettingsResult:
        """Fully-populated settings for this owner and account. Never raises."""
        if owner.is_empty:
            return ModerationSettingsResult.defaults()

        cache_key = CacheKeys.moderation_settings(owner.key, account_id)
        cached = cache_get(cache_key)
        if cached is not None:
            return ModerationSettingsResult.model_validate(cached)

        try:
            settings = self._lookup(owner, account_id)
        except Exception as e:
            logger.warning("Failed to load moderation settings for %s, using defaults: %s", owner.key, e)
            return ModerationSettingsResult.defaults()

        logger.debug("Resolved moderation settings for %s from %s", owner.key, settings.source)
        cache_set(cache_key, settings.model_dump(mode="json"), ttl=SETTINGS_CACHE_TTL_SECONDS)
        return settings

    def invalidate(self, owner: OwnerScope) -> None:
        """Drop every cached resolution for this owner."""
        cache_delete_pattern(CacheKeys.moderation_settings_pattern(owner.key))
