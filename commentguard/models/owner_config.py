"""
Owner-scoped moderation configuration consumed read-only by the pipeline.

Watchlist entries, whitelist entries and custom filters belong to exactly
one owner: a user or a managed client, never both.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ===========================================
# Ownership
# ===========================================


class OwnerScope(BaseModel):
    """The user or managed client a piece of configuration belongs to."""

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.user_id and not self.client_id

    def column(self) -> tuple[str, str]:
        """(column, value) pair for filtering owner-scoped tables. Client wins."""
        if self.client_id:
            return "client_id", self.client_id
        if self.user_id:
            return "user_id", self.user_id
        raise ValueError("OwnerScope has neither user_id nor client_id")

    @property
    def key(self) -> str:
        column, value = self.column()
        return f"{column.split('_')[0]}:{value}"


# ===========================================
# Watchlist
# ===========================================


class DetectionType(str, Enum):
    DIRECT_COMMENT = "DIRECT_COMMENT"
    USERNAME_MENTION = "USERNAME_MENTION"


class WatchlistMatch(BaseModel):
    threat_id: str
    name: str
    auto_delete_enabled: bool = False
    threat_level: str = "MEDIUM"


class WatchlistCheckResult(BaseModel):
    matches: list[WatchlistMatch] = Field(default_factory=list)

    @property
    def is_match(self) -> bool:
        return bool(self.matches)

    @property
    def should_auto_delete(self) -> bool:
        return any(m.auto_delete_enabled for m in self.matches)

    @property
    def names(self) -> str:
        return ", ".join(m.name for m in self.matches)


# ===========================================
# Custom filters
# ===========================================


class CustomFilter(BaseModel):
    id: str
    name: str
    category: str = ""
    prompt: str = ""
    is_enabled: bool = True
    auto_hide: bool = False
    auto_delete: bool = False
    auto_flag: bool = False
    instagram_account_id: Optional[str] = None

    @property
    def has_auto_action(self) -> bool:
        return self.auto_hide or self.auto_delete or self.auto_flag

    @property
    def action_tag(self) -> str:
        if self.auto_delete:
            return "AUTO-DELETE"
        if self.auto_hide:
            return "AUTO-HIDE"
        if self.auto_flag:
            return "AUTO-FLAG"
        return "CLASSIFY"


class CustomFilterMatch(BaseModel):
    """Filters that matched one comment, grouped by their strongest action."""

    matched: list[CustomFilter] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dedupe(self) -> "CustomFilterMatch":
        seen: set[str] = set()
        unique = []
        for f in self.matched:
            if f.id not in seen:
                seen.add(f.id)
                unique.append(f)
        self.matched = unique
        return self

    @property
    def deleting(self) -> list[CustomFilter]:
        return [f for f in self.matched if f.auto_delete]

    @property
    def hiding(self) -> list[CustomFilter]:
        return [f for f in self.matched if f.auto_hide]

    @property
    def flagging(self) -> list[CustomFilter]:
        return [f for f in self.matched if f.auto_flag]
