"""Jina embeddings client."""

import logging
from typing import Optional

import httpx

from commentguard.core.config import get_settings
from commentguard.models.moderation import EmbeddingProviderError

logger = logging.getLogger(__name__)


class EmbeddingsService:
    """Generates text-matching embeddings through the Jina HTTP API."""

    def __init__(self, http: Optional[httpx.Client] = None) -> None:
        self._http = http

    @property
    def http(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(timeout=15.0)
        return self._http

    def embed_many(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts, preserving order.

        Raises:
            EmbeddingProviderError: the request failed or the response was malformed
        """
        if not texts:
            return []

        settings = get_settings()
        if not settings.jina_api_key:
            raise EmbeddingProviderError("JINA_API_KEY is not configured")

        try:
            response = self.http.post(
                settings.jina_api_url,
                headers={"Authorization": f"Bearer {settings.jina_api_key}"},
                json={"model": settings.jina_model, "task": "text-matching", "input": texts},
            )
            response.raise_for_status()
            data = response.json()["data"]
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise EmbeddingProviderError(f"Jina embedding request failed: {e}") from e

        ordered = sorted(data, key=lambda item: item.get("index", 0))
        vectors = [item["embedding"] for item in ordered if item.get("embedding")]
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Jina returned {len(vectors)} embeddings for {len(texts)} inputs"
            )
        return vectors

    def embed(self, text: str) -> list[float]:
        return self.embed_many([text])[0]
