"""
Application constants for CommentGuard.

Centralizes moderation policy numbers and the hardcoded settings fallback
used when an owner has no moderation_settings row.
"""

# Billing
FEATURE_COMMENTS_MODERATED = "comments_moderated"

# Comment ingestion queue
DEFAULT_QUEUE_CONCURRENCY = 15
MAX_QUEUE_CONCURRENCY = 100
MODERATION_TASK_MAX_RETRIES = 3
MODERATION_TASK_RETRY_DELAY_SECONDS = 30

# Risk scoring
REPEAT_OFFENDER_BONUS_PER_COUNT = 10
REPEAT_OFFENDER_BONUS_CAP = 30
VELOCITY_THRESHOLD = 5  # comments in the velocity window
VELOCITY_BONUS = 20
ESTABLISHED_ACCOUNT_AGE_DAYS = 365
ESTABLISHED_ACCOUNT_PENALTY = -10
RISK_SHOULD_DELETE = 70
RISK_SHOULD_ESCALATE = 85
RISK_FLAG_FLOOR = 50  # non-benign at or above this is flagged without platform action

# Suspicious account tracking
FLAGGED_RISK_THRESHOLD = 30  # strictly greater counts as flagged
AUTO_BLOCK_SPAM_COUNT = 5  # strictly greater
AUTO_BLOCK_SPAM_PER_DAY = 10  # strictly greater
AUTO_BLOCK_BLACKMAIL_COUNT = 2
AUTO_BLOCK_THREAT_COUNT = 2
AUTO_BLOCK_DELETED_COUNT = 5
AUTO_BLOCK_AVERAGE_RISK = 80  # strictly greater
BACKFILL_BATCH_SIZE = 100

# Similarity
SIMILARITY_FLOOR = 0.6
SIMILARITY_MATCH_COUNT = 5  # rows requested from match_reviewed_comments
SIMILAR_DELETE_RISK = 80
SIMILAR_HIDE_RISK = 65

# Custom filters
CUSTOM_FILTER_LITERAL_PROMPT_MAX = 120
CUSTOM_FILTER_MIN_PHRASE_LENGTH = 3
CUSTOM_FILTER_RISK_DELETE = 80
CUSTOM_FILTER_RISK_HIDE = 65
CUSTOM_FILTER_RISK_FLAG = 50
CUSTOM_FILTER_SEVERE_BONUS = 10
CUSTOM_FILTER_SEVERE_CATEGORIES = frozenset({"blackmail", "threat", "harassment", "defamation"})

# Watchlist
WATCHLIST_SEVERITY_FLOOR = 100
WATCHLIST_CONFIDENCE_FLOOR = 0.95

# Re-evaluation
BLACKMAIL_OVERRIDE_SEVERITY = 85
BLACKMAIL_OVERRIDE_CONFIDENCE = 0.9
INVALID_CATEGORY_RETRY_DELAY_SECONDS = 1.0

# LLM provider
LLM_TEMPERATURE = 0.1
LLM_MAX_ATTEMPTS = 3
LLM_RETRY_DELAYS = [1, 2]
PROMPT_MAX_INPUT_LENGTH = 5000
URL_ANALYSIS_TTL_SECONDS = 24 * 60 * 60

# Settings cache
SETTINGS_CACHE_TTL_SECONDS = 60

# Hardcoded moderation settings (no row for this owner). Percentages 0-100.
DEFAULT_GLOBAL_THRESHOLD = 70
ROW_GLOBAL_THRESHOLD_FALLBACK = 50  # row exists but global_threshold is null
DEFAULT_CATEGORY_THRESHOLDS = {
    "blackmail": 70,
    "threat": 70,
    "harassment": 75,
    "defamation": 75,
    "spam": 85,
}
DEFAULT_AUTO_DELETE = {
    "blackmail": True,
    "threat": True,
    "harassment": True,
    "defamation": True,
    "spam": False,
}
DEFAULT_FLAG_HIDE_THRESHOLDS = {
    "blackmail": 60,
    "threat": 60,
    "harassment": 65,
    "defamation": 65,
    "spam": 75,
}
DEFAULT_FLAG_DELETE_THRESHOLDS = {
    "blackmail": 50,
    "threat": 50,
    "harassment": 55,
    "defamation": 55,
    "spam": 65,
}
DEFAULT_CONFIDENCE_DELETE_PCT = 90
DEFAULT_CONFIDENCE_HIDE_PCT = 70
DEFAULT_SIMILARITY_AUTO_MOD_ENABLED = True
DEFAULT_SIMILARITY_THRESHOLD_PCT = 85
