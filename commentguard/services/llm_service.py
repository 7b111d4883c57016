"""
Groq-backed classification provider.

Handles:
- Comment classification (JSON mode, prompt-injection hardened)
- Focused re-evaluation toward a suspected category
- Semantic matching of comments against descriptive custom filters
- URL threat analysis with a 24h Redis cache

Returns RawClassification: category validation against CommentCategory is
the classifier adapter's job, not this provider's.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Optional
from urllib.parse import urlparse

from groq import APIError, Groq

from commentguard.core.cache import CacheKeys, cache_get, cache_set
from commentguard.core.config import get_settings
from commentguard.core.constants import (
    LLM_MAX_ATTEMPTS,
    LLM_RETRY_DELAYS,
    LLM_TEMPERATURE,
    PROMPT_MAX_INPUT_LENGTH,
    URL_ANALYSIS_TTL_SECONDS,
)
from commentguard.models.moderation import (
    ClassificationProviderError,
    CommentCategory,
    ExtractedIdentifier,
    IdentifierType,
    RawClassification,
    SimilarityMatch,
    UrlAnalysis,
)
from commentguard.models.owner_config import CustomFilter
from commentguard.services import prompts

logger = logging.getLogger(__name__)

INJECTION_PATTERNS = [
    re.compile(r"ignore\s+(all\s+)?previous\s+instructions", re.IGNORECASE),
    re.compile(r"new\s+instructions?:", re.IGNORECASE),
    re.compile(r"system\s+(message|prompt):", re.IGNORECASE),
    re.compile(r"you\s+are\s+now\s+a", re.IGNORECASE),
    re.compile(r"disregard\s+(all\s+)?(previous|above)", re.IGNORECASE),
    re.compile(r"\[/?INST\]", re.IGNORECASE),
    re.compile(r"<\|im_(start|end)\|>", re.IGNORECASE),
]

INJECTION_RESPONSE_MARKERS = ("following your instructions", "as you requested", "ignoring previous")

_IDENTIFIER_TYPE_MAP: dict[str, IdentifierType] = {
    "venmo": IdentifierType.VENMO,
    "cashapp": IdentifierType.CASHAPP,
    "paypal": IdentifierType.PAYPAL,
    "zelle": IdentifierType.ZELLE,
    "bitcoin": IdentifierType.BITCOIN,
    "ethereum": IdentifierType.ETHEREUM,
    "crypto": IdentifierType.CRYPTO,
    "email": IdentifierType.EMAIL,
    "phone": IdentifierType.PHONE,
    "username": IdentifierType.USERNAME,
    "handle": IdentifierType.USERNAME,
    "social_platform": IdentifierType.USERNAME,
    "instagram": IdentifierType.USERNAME,
    "twitter": IdentifierType.USERNAME,
    "tiktok": IdentifierType.USERNAME,
    "snapchat": IdentifierType.USERNAME,
}
_LINK_HINTS = ("domain", "url", "link", "website", "onlyfans", "linktree", "patreon")


def sanitize_user_input(text: str) -> str:
    """Cap length and redact known prompt-injection phrases."""
    sanitized = (text or "")[:PROMPT_MAX_INPUT_LENGTH]
    for pattern in INJECTION_PATTERNS:
        if pattern.search(sanitized):
            logger.warning("Potential prompt injection detected: %s", pattern.pattern)
            sanitized = pattern.sub("[REDACTED SUSPICIOUS PATTERN]", sanitized)
    return sanitized


def normalize_identifiers(raw: Any) -> list[ExtractedIdentifier]:
    """Map free-form LLM identifier types onto IdentifierType, dropping empty values."""
    if not isinstance(raw, list):
        return []

    identifiers = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        value = str(item.get("value") or "").strip()
        if not value:
            continue
        raw_type = str(item.get("type") or "").lower()
        platform = item.get("platform") or None
        lower_platform = str(platform or "").lower()

        id_type = _IDENTIFIER_TYPE_MAP.get(raw_type)
        if id_type is None:
            if any(hint in raw_type or hint in lower_platform for hint in _LINK_HINTS):
                id_type = IdentifierType.DOMAIN
            elif value.startswith("http") or ("." in value and "@" not in value):
                id_type = IdentifierType.DOMAIN
            elif "payment" in raw_type or "payment" in lower_platform:
                id_type = next(
                    (
                        _IDENTIFIER_TYPE_MAP[name]
                        for name in ("venmo", "cashapp", "paypal")
                        if name in lower_platform or name in value.lower()
                    ),
                    IdentifierType.USERNAME,
                )
            else:
                id_type = IdentifierType.USERNAME

        identifiers.append(ExtractedIdentifier(type=id_type, value=value, platform=platform))
    return identifiers


def normalize_url(url: str) -> str:
    """Lowercase host, drop a trailing slash, keep path and query."""
    parsed = urlparse(url.strip())
    if not parsed.scheme or not parsed.hostname:
        return url.lower().strip()
    normalized = f"{parsed.scheme}://{parsed.hostname.lower()}{parsed.path.rstrip('/')}"
    if parsed.query:
        normalized += f"?{parsed.query}"
    return normalized


def _parse_raw_classification(payload: dict[str, Any], fallback_category: str = "") -> RawClassification:
    try:
        severity = int(payload.get("severity") or 0)
    except (TypeError, ValueError):
        severity = 0
    try:
        confidence = float(payload.get("confidence") if payload.get("confidence") is not None else 0.5)
    except (TypeError, ValueError):
        confidence = 0.5
    return RawClassification(
        category=str(payload.get("category") or fallback_category),
        severity=severity,
        confidence=confidence,
        rationale=payload.get("rationale") or "No rationale provided",
        extracted_identifiers=normalize_identifiers(payload.get("extracted_identifiers")),
    )


class LLMService:
    """Classification provider backed by Groq chat completions."""

    def __init__(
        self,
        client: Optional[Groq] = None,
        model: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._model = model
        self._sleep = sleep

    @property
    def client(self) -> Groq:
        if self._client is None:
            self._client = Groq(api_key=get_settings().groq_api_key)
        return self._client

    @property
    def model(self) -> str:
        if self._model is None:
            self._model = get_settings().groq_model
        return self._model

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _complete_json(self, system: str, user: str, temperature: float = LLM_TEMPERATURE) -> dict:
        """One JSON-mode completion with bounded retries.

        Raises:
            ClassificationProviderError: every attempt failed
        """
        last_error: Optional[Exception] = None
        for attempt in range(LLM_MAX_ATTEMPTS):
            try:
                completion = self.client.chat.completions.create(
                    model=self.model,
                    messages=[
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    response_format={"type": "json_object"},
                    temperature=temperature,
                )
                content = completion.choices[0].message.content
                if not content:
                    raise ValueError("Empty response from Groq")
                parsed = json.loads(content)
                if not isinstance(parsed, dict):
                    raise ValueError("Groq response is not a JSON object")
                return parsed
            except (APIError, ValueError, IndexError) as e:
                last_error = e
                if attempt < len(LLM_RETRY_DELAYS):
                    delay = LLM_RETRY_DELAYS[attempt]
                    logger.warning(
                        "Groq call failed (attempt %d/%d): %s. Retrying in %ss",
                        attempt + 1,
                        LLM_MAX_ATTEMPTS,
                        e,
                        delay,
                    )
                    self._sleep(delay)

        raise ClassificationProviderError(
            f"Groq call failed after {LLM_MAX_ATTEMPTS} attempts: {last_error}"
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(
        self,
        text: str,
        filters: Optional[list[CustomFilter]] = None,
        similarity: Optional[SimilarityMatch] = None,
    ) -> RawClassification:
        """Classify a comment. The returned category may be outside the taxonomy."""
        system = prompts.build_system_prompt(filters, similarity)
        user = prompts.build_user_prompt(
            sanitize_user_input(text),
            similarity,
            sanitize_user_input(similarity.comment_text) if similarity else "",
        )
        payload = self._complete_json(system, user)

        rationale = str(payload.get("rationale") or "").lower()
        if any(marker in rationale for marker in INJECTION_RESPONSE_MARKERS) or (
            payload.get("confidence") == 1.0 and payload.get("category") == CommentCategory.BENIGN.value
        ):
            logger.error("Prompt injection suspected in classifier response: %r", rationale[:200])
            return RawClassification(
                category=CommentCategory.BENIGN.value,
                severity=0,
                confidence=0.3,
                rationale="Potential prompt injection detected - manual review required",
            )

        return _parse_raw_classification(payload)

    def re_evaluate(self, text: str, suspected: CommentCategory, evidence: str) -> RawClassification:
        """Second opinion focused on the pattern-suspected category.

        An out-of-taxonomy category is coerced to the suspected one.
        """
        system, user = prompts.build_reevaluation_prompts(
            sanitize_user_input(text), suspected, evidence
        )
        raw = _parse_raw_classification(self._complete_json(system, user), suspected.value)
        if not raw.has_valid_category:
            raw = raw.model_copy(update={"category": suspected.value})
        return raw

    def match_filter_descriptions(self, text: str, filters: list[CustomFilter]) -> list[str]:
        """IDs of filters whose description matches the comment. [] on any failure."""
        if not filters:
            return []
        try:
            payload = self._complete_json(
                prompts.FILTER_MATCH_SYSTEM_PROMPT,
                prompts.build_filter_match_prompt(sanitize_user_input(text), filters),
                temperature=0.2,
            )
        except ClassificationProviderError as e:
            logger.warning("Custom filter semantic match failed: %s", e)
            return []

        ids = payload.get("matching_filter_ids")
        if not isinstance(ids, list):
            return []
        offered = {f.id for f in filters}
        return [i for i in ids if i in offered]

    def analyze_url(self, url: str) -> UrlAnalysis:
        """Threat analysis for a URL, cached for 24h. Fails safe (not suspicious)."""
        normalized = normalize_url(url)
        cache_key = CacheKeys.url_analysis(normalized)
        cached = cache_get(cache_key)
        if cached is not None:
            logger.debug("URL analysis cache hit: %s", normalized)
            return UrlAnalysis.model_validate(cached)

        try:
            payload = self._complete_json(
                prompts.URL_ANALYSIS_SYSTEM_PROMPT,
                prompts.URL_ANALYSIS_USER_PROMPT.format(url=url),
            )
        except ClassificationProviderError as e:
            logger.error("URL analysis failed for %s: %s", normalized, e)
            return UrlAnalysis(rationale="LLM analysis failed - defaulted to safe")

        result = UrlAnalysis(
            is_suspicious=bool(payload.get("is_suspicious", False)),
            link_type=str(payload.get("link_type") or "other"),
            contains_payment_solicitation=bool(payload.get("contains_payment_solicitation", False)),
            rationale=str(payload.get("rationale") or ""),
        )
        cache_set(cache_key, result.model_dump(), ttl=URL_ANALYSIS_TTL_SECONDS)
        return result
