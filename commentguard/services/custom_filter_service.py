"""
Custom filters.

Owner-defined rules with optional auto-actions. A filter matches a comment
when its category equals the classified category, when its prompt matches
literally, or (for descriptive prompts) when the LLM says the comment fits
the description.
"""

import logging
import re
from typing import Optional

from supabase import Client

from commentguard.core.constants import (
    CUSTOM_FILTER_LITERAL_PROMPT_MAX,
    CUSTOM_FILTER_MIN_PHRASE_LENGTH,
    CUSTOM_FILTER_RISK_DELETE,
    CUSTOM_FILTER_RISK_FLAG,
    CUSTOM_FILTER_RISK_HIDE,
    CUSTOM_FILTER_SEVERE_BONUS,
    CUSTOM_FILTER_SEVERE_CATEGORIES,
)
from commentguard.core.database import get_supabase
from commentguard.models.moderation import Classification
from commentguard.models.owner_config import CustomFilter, CustomFilterMatch, OwnerScope
from commentguard.services.llm_service import LLMService

logger = logging.getLogger(__name__)

_PHRASE_SPLIT = re.compile(r"\s+or\s+|[,;]|\.")


def prompt_matches(custom_filter: CustomFilter, text: str) -> bool:
    """Literal match. Short prompts are substrings; long ones are split into phrases."""
    prompt = (custom_filter.prompt or "").strip().lower()
    if not prompt:
        return False
    comment = (text or "").lower()
    if len(prompt) <= CUSTOM_FILTER_LITERAL_PROMPT_MAX:
        return prompt in comment

    phrases = [p.strip().strip("\"'") for p in _PHRASE_SPLIT.split(prompt)]
    return any(p in comment for p in phrases if len(p) >= CUSTOM_FILTER_MIN_PHRASE_LENGTH)


def risk_for_match(match: CustomFilterMatch) -> int:
    """Fixed risk by strongest action, bumped when a severe-category filter matched."""
    if match.deleting:
        score = CUSTOM_FILTER_RISK_DELETE
    elif match.hiding:
        score = CUSTOM_FILTER_RISK_HIDE
    else:
        score = CUSTOM_FILTER_RISK_FLAG
    if any((f.category or "").lower() in CUSTOM_FILTER_SEVERE_CATEGORIES for f in match.matched):
        score = min(100, score + CUSTOM_FILTER_SEVERE_BONUS)
    return score


class CustomFilterService:
    def __init__(self, supabase: Optional[Client] = None, llm: Optional[LLMService] = None) -> None:
        self._supabase = supabase
        self.llm = llm or LLMService()

    @property
    def supabase(self) -> Client:
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def load_filters(self, owner: OwnerScope, account_id: Optional[str]) -> list[CustomFilter]:
        """Enabled filters for this owner that are global or pinned to this account."""
        if owner.is_empty:
            logger.warning("No user_id or client_id for moderation; custom filters not applied")
            return []

        query = self.supabase.table("custom_filters").select("*").eq("is_enabled", True)
        if owner.client_id and owner.user_id:
            owner_terms = [f"client_id.eq.{owner.client_id}", f"user_id.eq.{owner.user_id}"]
        else:
            column, value = owner.column()
            query = query.eq(column, value)
            owner_terms = []

        # PostgREST takes a single or= parameter, so both conditions share one expression
        if account_id:
            account_terms = ["instagram_account_id.is.null", f"instagram_account_id.eq.{account_id}"]
            if owner_terms:
                query = query.or_(",".join(f"and({o},{a})" for o in owner_terms for a in account_terms))
            else:
                query = query.or_(",".join(account_terms))
        else:
            query = query.is_("instagram_account_id", "null")
            if owner_terms:
                query = query.or_(",".join(owner_terms))

        result = query.execute()
        filters = [CustomFilter.model_validate(row) for row in result.data or []]
        with_actions = [f for f in filters if f.has_auto_action]
        if with_actions:
            logger.info("Loaded %d custom filter(s), %d with auto-actions", len(filters), len(with_actions))
        return filters

    def evaluate(
        self, text: str, classification: Classification, filters: list[CustomFilter]
    ) -> CustomFilterMatch:
        """Filters with auto-actions that match this comment."""
        candidates = [f for f in filters if f.is_enabled and f.has_auto_action]
        if not candidates:
            return CustomFilterMatch()

        category = classification.category.value
        matched = [
            f for f in candidates if (f.category or "").lower() == category or prompt_matches(f, text)
        ]

        matched_ids = {f.id for f in matched}
        remaining = [f for f in candidates if f.id not in matched_ids]
        if remaining:
            semantic_ids = set(self.llm.match_filter_descriptions(text, remaining))
            semantic = [f for f in remaining if f.id in semantic_ids]
            if semantic:
                logger.info(
                    "Custom filter(s) matched by description: %s", ", ".join(f.name for f in semantic)
                )
                matched.extend(semantic)

        return CustomFilterMatch(matched=matched)
