"""
Whitelist lookups.

Two questions, both owner-scoped:
- is this commenter whitelisted (by platform ID or @username)?
- is any identifier extracted from the comment whitelisted?

Entries may be pinned to one account or global (instagram_account_id NULL).
"""

import logging
from typing import Optional

from supabase import Client

from commentguard.core.database import get_supabase
from commentguard.models.moderation import ExtractedIdentifier, IdentifierType
from commentguard.models.owner_config import OwnerScope

logger = logging.getLogger(__name__)


class WhitelistService:
    def __init__(self, supabase: Optional[Client] = None) -> None:
        self._supabase = supabase

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def _find_active(
        self,
        owner: OwnerScope,
        identifier: str,
        identifier_type: str,
        account_id: Optional[str] = None,
        account_scoped: bool = False,
    ) -> bool:
        column, value = owner.column()
        query = (
            self.supabase.table("whitelisted_identifiers")
            .select("id")
            .eq(column, value)
            .eq("identifier", identifier)
            .eq("identifier_type", identifier_type)
            .eq("is_active", True)
        )
        if account_scoped:
            if account_id:
                query = query.or_(f"instagram_account_id.eq.{account_id},instagram_account_id.is.null")
            else:
                query = query.is_("instagram_account_id", "null")
        result = query.limit(1).execute()
        return bool(result.data)

    def is_commenter_whitelisted(
        self,
        commenter_id: str,
        commenter_username: str,
        account_id: Optional[str],
        owner: OwnerScope,
    ) -> bool:
        """Commenter entries are stored as USERNAME rows holding either the ID or '@name'."""
        if owner.is_empty:
            return False

        if commenter_id and self._find_active(
            owner, commenter_id.lower(), IdentifierType.USERNAME.value, account_id, account_scoped=True
        ):
            return True

        username = (commenter_username or "").strip().lower()
        if not username:
            return False
        if not username.startswith("@"):
            username = f"@{username}"
        return self._find_active(
            owner, username, IdentifierType.USERNAME.value, account_id, account_scoped=True
        )

    def is_any_identifier_whitelisted(
        self, identifiers: list[ExtractedIdentifier], owner: OwnerScope
    ) -> bool:
        """True when any extracted identifier, or an email's domain, is whitelisted."""
        if owner.is_empty:
            return False

        for identifier in identifiers:
            value = identifier.value.strip().lower()
            if self._find_active(owner, value, identifier.type.value):
                logger.info("Whitelisted identifier matched: %s (%s)", value, identifier.type.value)
                return True

            if identifier.type == IdentifierType.EMAIL and "@" in value:
                domain = value.split("@", 1)[1]
                if domain and self._find_active(owner, domain, IdentifierType.DOMAIN.value):
                    logger.info("Whitelisted email domain matched: %s", domain)
                    return True
        return False
