"""
Comment moderation models.

One ModerationInput per incoming comment, one ModerationResult out.
Classification is the validated verdict; RawClassification is what the
provider returned before its category was checked.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ===========================================
# Enums
# ===========================================


class CommentCategory(str, Enum):
    """Fixed classification taxonomy."""

    BLACKMAIL = "blackmail"
    THREAT = "threat"
    DEFAMATION = "defamation"
    HARASSMENT = "harassment"
    SPAM = "spam"
    BENIGN = "benign"


class ActionTaken(str, Enum):
    """Terminal outcome of one moderation run."""

    BENIGN = "BENIGN"
    FLAGGED = "FLAGGED"
    DELETED = "DELETED"


class PlatformAction(str, Enum):
    """Side effects the action executor knows how to apply."""

    HIDE = "hide"
    DELETE = "delete"
    BLOCK = "block"


class Platform(str, Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class ReasonCode(str, Enum):
    """Which cascade rule produced the verdict. Values are stable API strings."""

    BILLING_LIMIT_REACHED = "BILLING_LIMIT_REACHED"
    COMMENTER_WHITELISTED = "COMMENTER_WHITELISTED"
    POST_OWNER = "POST_OWNER"
    AUTO_DELETE_ENABLED = "AUTO_DELETE_ENABLED"
    AUTO_DELETE_SIMILAR_HIGH_CONFIDENCE = "AUTO_DELETE_SIMILAR_HIGH_CONFIDENCE"
    AUTO_HIDE_SIMILAR_HIGH_CONFIDENCE = "AUTO_HIDE_SIMILAR_HIGH_CONFIDENCE"
    WATCHLIST_MATCH = "WATCHLIST_MATCH"
    WHITELISTED = "WHITELISTED"
    WATCHLIST_MENTION = "WATCHLIST_MENTION"
    CUSTOM_FILTER_AUTO_DELETE = "CUSTOM_FILTER_AUTO_DELETE"
    CUSTOM_FILTER_AUTO_HIDE = "CUSTOM_FILTER_AUTO_HIDE"
    CONFIDENCE_AUTO_DELETE = "CONFIDENCE_AUTO_DELETE"
    CONFIDENCE_AUTO_HIDE = "CONFIDENCE_AUTO_HIDE"
    AUTO_DELETE_SIMILAR_MATCH = "AUTO_DELETE_SIMILAR_MATCH"
    AUTO_HIDE_SIMILAR_MATCH = "AUTO_HIDE_SIMILAR_MATCH"
    ALLOWED_SIMILAR_CONFIRMED = "ALLOWED_SIMILAR_CONFIRMED"
    ACCOUNT_AUTO_HIDE = "ACCOUNT_AUTO_HIDE"
    CATEGORY_AUTO_DELETE = "CATEGORY_AUTO_DELETE"
    CATEGORY_FLAG_DELETE = "CATEGORY_FLAG_DELETE"
    CATEGORY_FLAG_HIDE = "CATEGORY_FLAG_HIDE"
    RISK_FLAGGED = "RISK_FLAGGED"
    CLASSIFIED_BENIGN = "CLASSIFIED_BENIGN"
    SYSTEM_ERROR = "SYSTEM_ERROR"


class IdentifierType(str, Enum):
    """Normalized identifier types pulled out of comment text."""

    USERNAME = "USERNAME"
    VENMO = "VENMO"
    CASHAPP = "CASHAPP"
    PAYPAL = "PAYPAL"
    ZELLE = "ZELLE"
    BITCOIN = "BITCOIN"
    ETHEREUM = "ETHEREUM"
    CRYPTO = "CRYPTO"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    DOMAIN = "DOMAIN"


class AutoActionKind(str, Enum):
    """Review actions that carry a predetermined action for similar comments."""

    AUTO_HIDE_SIMILAR = "AUTO_HIDE_SIMILAR"
    AUTO_DELETE_SIMILAR = "AUTO_DELETE_SIMILAR"


# ===========================================
# Core records
# ===========================================


class ModerationInput(BaseModel):
    """A single comment to evaluate. Built once per event, never mutated."""

    model_config = ConfigDict(frozen=True)

    comment_id: str
    comment_text: str
    commenter_id: str
    commenter_username: str = ""
    instagram_account_id: Optional[str] = None
    facebook_page_id: Optional[str] = None
    post_id: Optional[str] = None
    ig_comment_id: Optional[str] = None
    fb_comment_id: Optional[str] = None
    access_token: Optional[str] = None
    user_id: Optional[str] = None
    client_id: Optional[str] = None

    @property
    def account_id(self) -> Optional[str]:
        """The owning account, whichever platform it lives on."""
        return self.instagram_account_id or self.facebook_page_id


class ActionTarget(BaseModel):
    """Where a platform action lands and which local row records it."""

    local_id: str
    platform_id: Optional[str] = None
    access_token: Optional[str] = None
    platform: Platform = Platform.INSTAGRAM

    @classmethod
    def for_comment(cls, moderation_input: ModerationInput) -> "ActionTarget":
        is_facebook = bool(moderation_input.facebook_page_id and not moderation_input.instagram_account_id)
        return cls(
            local_id=moderation_input.comment_id,
            platform_id=moderation_input.fb_comment_id if is_facebook else moderation_input.ig_comment_id,
            access_token=moderation_input.access_token,
            platform=Platform.FACEBOOK if is_facebook else Platform.INSTAGRAM,
        )


class ExtractedIdentifier(BaseModel):
    type: IdentifierType
    value: str
    platform: Optional[str] = None


class Classification(BaseModel):
    category: CommentCategory
    severity: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.0, le=1.0)
    rationale: str = ""
    extracted_identifiers: list[ExtractedIdentifier] = Field(default_factory=list)

    def annotated(self, prefix: str) -> "Classification":
        """Copy with a rationale prefix. Cascade annotations stack left to right."""
        return self.model_copy(update={"rationale": f"{prefix} {self.rationale}".strip()})


class RawClassification(BaseModel):
    """Provider output before the category is validated against CommentCategory."""

    category: str
    severity: int = 0
    confidence: float = 0.5
    rationale: str = "No rationale provided"
    extracted_identifiers: list[ExtractedIdentifier] = Field(default_factory=list)

    @property
    def has_valid_category(self) -> bool:
        return self.category in {c.value for c in CommentCategory}

    def to_classification(self, category: Optional[CommentCategory] = None) -> Classification:
        return Classification(
            category=category or CommentCategory(self.category),
            severity=max(0, min(100, int(self.severity))),
            confidence=max(0.0, min(1.0, float(self.confidence))),
            rationale=self.rationale,
            extracted_identifiers=self.extracted_identifiers,
        )


class PatternResult(BaseModel):
    """Regex second opinion. category is None when nothing matched."""

    category: Optional[CommentCategory] = None
    details: str = ""


class RiskScoreResult(BaseModel):
    risk_score: int
    base_score: float
    repeat_offender_bonus: int
    velocity_bonus: int
    account_age_penalty: int
    should_delete: bool
    should_escalate: bool
    formula: str


class SimilarityMatch(BaseModel):
    """Best reviewed comment above the similarity floor."""

    comment_id: str
    similarity: float
    comment_text: str = ""
    commenter_id: Optional[str] = None
    commenter_username: Optional[str] = None
    category: Optional[str] = None


class AutoActionMatch(BaseModel):
    action: AutoActionKind
    match: SimilarityMatch


class UrlAnalysis(BaseModel):
    is_suspicious: bool = False
    link_type: str = "other"
    contains_payment_solicitation: bool = False
    rationale: str = ""


class ModerationResult(BaseModel):
    """What the caller gets back. Always produced, even on total failure."""

    action: ActionTaken
    reason: ReasonCode
    classification: Classification
    risk_score: int = 0
    identifiers: list[ExtractedIdentifier] = Field(default_factory=list)


# ===========================================
# Request / Response Models
# ===========================================


class EvaluateCommentRequest(BaseModel):
    """Synchronous evaluation request from an ingestion integration."""

    comment_id: str
    comment_text: str = Field(..., max_length=20000)
    commenter_id: str
    commenter_username: str = ""
    instagram_account_id: Optional[str] = None
    facebook_page_id: Optional[str] = None
    post_id: Optional[str] = None
    ig_comment_id: Optional[str] = None
    fb_comment_id: Optional[str] = None
    access_token: Optional[str] = None
    user_id: Optional[str] = None
    client_id: Optional[str] = None

    def to_input(self) -> ModerationInput:
        return ModerationInput(**self.model_dump())


class AnalyzeUrlRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)


class InvalidateSettingsRequest(BaseModel):
    user_id: Optional[str] = None
    client_id: Optional[str] = None


class EnqueueCommentResponse(BaseModel):
    task_id: str
    comment_id: str
    status: str = "queued"


# ===========================================
# Exception Classes
# ===========================================


class ModerationError(Exception):
    """Base exception for moderation errors."""

    pass


class ClassificationProviderError(ModerationError):
    """The LLM provider failed or returned an unusable response."""

    pass


class EmbeddingProviderError(ModerationError):
    """The embedding provider failed or returned an unusable response."""

    pass


class OwnerNotResolvedError(ModerationError):
    """No user or client could be resolved for the owning account."""

    pass
