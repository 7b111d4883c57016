"""
Resolved moderation settings.

ModerationSettingsResult is built once per evaluation by SettingsResolver
with every field populated, so the cascade never falls back to defaults
itself. Risk thresholds are on the 0-100 risk scale; confidence and
similarity thresholds are fractions in [0, 1].
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from commentguard.core.constants import (
    DEFAULT_AUTO_DELETE,
    DEFAULT_CATEGORY_THRESHOLDS,
    DEFAULT_CONFIDENCE_DELETE_PCT,
    DEFAULT_CONFIDENCE_HIDE_PCT,
    DEFAULT_FLAG_DELETE_THRESHOLDS,
    DEFAULT_FLAG_HIDE_THRESHOLDS,
    DEFAULT_GLOBAL_THRESHOLD,
    DEFAULT_SIMILARITY_AUTO_MOD_ENABLED,
    DEFAULT_SIMILARITY_THRESHOLD_PCT,
    ROW_GLOBAL_THRESHOLD_FALLBACK,
)
from commentguard.models.moderation import CommentCategory

MODERATED_CATEGORIES = (
    CommentCategory.BLACKMAIL,
    CommentCategory.THREAT,
    CommentCategory.HARASSMENT,
    CommentCategory.DEFAMATION,
    CommentCategory.SPAM,
)


class CategoryPolicy(BaseModel):
    """Per-category enable flags and risk thresholds."""

    model_config = ConfigDict(frozen=True)

    threshold: int
    auto_delete: bool = False
    flag_delete: bool = False
    flag_delete_threshold: int = 100
    flag_hide: bool = False
    flag_hide_threshold: int = 100


class ModerationSettingsResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    global_threshold: int = DEFAULT_GLOBAL_THRESHOLD
    categories: dict[CommentCategory, CategoryPolicy]
    confidence_delete_threshold: float = Field(default=DEFAULT_CONFIDENCE_DELETE_PCT / 100, ge=0, le=1)
    confidence_hide_threshold: float = Field(default=DEFAULT_CONFIDENCE_HIDE_PCT / 100, ge=0, le=1)
    similarity_auto_mod_enabled: bool = DEFAULT_SIMILARITY_AUTO_MOD_ENABLED
    similarity_threshold: float = Field(default=DEFAULT_SIMILARITY_THRESHOLD_PCT / 100, ge=0, le=1)
    source: str = "defaults"

    def policy_for(self, category: CommentCategory) -> CategoryPolicy:
        """Policy for a category. Benign never triggers a category action."""
        policy = self.categories.get(category)
        if policy is None:
            return CategoryPolicy(threshold=self.global_threshold)
        return policy

    @classmethod
    def defaults(cls) -> "ModerationSettingsResult":
        return cls(
            categories={
                category: CategoryPolicy(
                    threshold=DEFAULT_CATEGORY_THRESHOLDS[category.value],
                    auto_delete=DEFAULT_AUTO_DELETE[category.value],
                    flag_delete_threshold=DEFAULT_FLAG_DELETE_THRESHOLDS[category.value],
                    flag_hide_threshold=DEFAULT_FLAG_HIDE_THRESHOLDS[category.value],
                )
                for category in MODERATED_CATEGORIES
            }
        )

    @classmethod
    def from_row(cls, row: dict[str, Any], source: str) -> "ModerationSettingsResult":
        """Build from a moderation_settings row, defaulting every NULL column."""

        def _get(column: str, default: Any) -> Any:
            value: Optional[Any] = row.get(column)
            return default if value is None else value

        global_threshold = int(_get("global_threshold", ROW_GLOBAL_THRESHOLD_FALLBACK))
        categories = {}
        for category in MODERATED_CATEGORIES:
            name = category.value
            categories[category] = CategoryPolicy(
                threshold=int(_get(f"{name}_threshold", global_threshold)),
                auto_delete=bool(_get(f"auto_delete_{name}", DEFAULT_AUTO_DELETE[name])),
                flag_delete=bool(_get(f"flag_delete_{name}", False)),
                flag_delete_threshold=int(
                    _get(f"flag_delete_{name}_threshold", DEFAULT_FLAG_DELETE_THRESHOLDS[name])
                ),
                flag_hide=bool(_get(f"flag_hide_{name}", False)),
                flag_hide_threshold=int(
                    _get(f"flag_hide_{name}_threshold", DEFAULT_FLAG_HIDE_THRESHOLDS[name])
                ),
            )

        return cls(
            global_threshold=global_threshold,
            categories=categories,
            confidence_delete_threshold=_get("confidence_delete_threshold", DEFAULT_CONFIDENCE_DELETE_PCT) / 100,
            confidence_hide_threshold=_get("confidence_hide_threshold", DEFAULT_CONFIDENCE_HIDE_PCT) / 100,
            similarity_auto_mod_enabled=bool(
                _get("similarity_auto_mod_enabled", DEFAULT_SIMILARITY_AUTO_MOD_ENABLED)
            ),
            similarity_threshold=_get("similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD_PCT) / 100,
            source=source,
        )
