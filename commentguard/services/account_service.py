"""Lookups on connected Instagram accounts and Facebook pages."""

import logging
from typing import Optional

from supabase import Client

from commentguard.core.database import get_supabase
from commentguard.models.moderation import ModerationInput
from commentguard.models.owner_config import OwnerScope

logger = logging.getLogger(__name__)


def _bare(username: Optional[str]) -> str:
    return (username or "").strip().lstrip("@").lower()


class AccountService:
    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def _row(self, table: str, columns: str, row_id: str) -> Optional[dict]:
        result = self.supabase.table(table).select(columns).eq("id", row_id).limit(1).execute()
        return result.data[0] if result.data else None

    def is_commenter_owner(self, moderation_input: ModerationInput) -> bool:
        """True when the comment was written by the account that owns the post."""
        if moderation_input.instagram_account_id:
            account = self._row(
                "instagram_accounts", "instagram_id, username", moderation_input.instagram_account_id
            )
            if not account:
                return False
            if moderation_input.commenter_id and moderation_input.commenter_id == account.get("instagram_id"):
                return True
            commenter = _bare(moderation_input.commenter_username)
            return bool(commenter) and commenter == _bare(account.get("username"))

        if moderation_input.facebook_page_id:
            page = self._row("facebook_pages", "facebook_page_id", moderation_input.facebook_page_id)
            return bool(page) and moderation_input.commenter_id == page.get("facebook_page_id")
        return False

    def resolve_owner(
        self, instagram_account_id: Optional[str], facebook_page_id: Optional[str]
    ) -> OwnerScope:
        """Owner of the account or page. Empty when neither row names one."""
        row = None
        if instagram_account_id:
            row = self._row("instagram_accounts", "user_id, client_id", instagram_account_id)
        elif facebook_page_id:
            row = self._row("facebook_pages", "user_id, client_id", facebook_page_id)
        if not row:
            return OwnerScope()
        return OwnerScope(user_id=row.get("user_id"), client_id=row.get("client_id"))

    def get_instagram_credentials(self, instagram_account_id: str) -> Optional[dict]:
        """Platform user ID and access token for an Instagram account."""
        return self._row("instagram_accounts", "instagram_id, access_token", instagram_account_id)
