"""Unit tests for EmbeddingsService.

Tests:
- embed_many() request shape and index ordering
- Provider failures raise EmbeddingProviderError
- Missing API key
"""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from commentguard.models.moderation import EmbeddingProviderError
from commentguard.services.embeddings_service import EmbeddingsService


@pytest.fixture
def jina_settings() -> MagicMock:
    settings = MagicMock()
    settings.jina_api_key = "jina-key"
    settings.jina_api_url = "https://api.jina.ai/v1/embeddings"
    settings.jina_model = "jina-embeddings-v3"
    return settings


@pytest.fixture
def http() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(http) -> EmbeddingsService:
    return EmbeddingsService(http=http)


def _response(data) -> MagicMock:
    response = MagicMock()
    response.json.return_value = {"data": data}
    return response


class TestEmbedMany:
    """Tests for embed_many()."""

    @pytest.mark.unit
    def test_orders_by_index(self, service, http, jina_settings) -> None:
        http.post.return_value = _response(
            [{"index": 1, "embedding": [0.2]}, {"index": 0, "embedding": [0.1]}]
        )
        with patch("commentguard.services.embeddings_service.get_settings", return_value=jina_settings):
            vectors = service.embed_many(["a", "b"])

        assert vectors == [[0.1], [0.2]]
        kwargs = http.post.call_args.kwargs
        assert kwargs["headers"] == {"Authorization": "Bearer jina-key"}
        assert kwargs["json"]["task"] == "text-matching"
        assert kwargs["json"]["input"] == ["a", "b"]

    @pytest.mark.unit
    def test_empty_input_skips_request(self, service, http) -> None:
        assert service.embed_many([]) == []
        http.post.assert_not_called()

    @pytest.mark.unit
    def test_missing_key_raises(self, service, jina_settings) -> None:
        jina_settings.jina_api_key = ""
        with patch("commentguard.services.embeddings_service.get_settings", return_value=jina_settings):
            with pytest.raises(EmbeddingProviderError, match="JINA_API_KEY"):
                service.embed_many(["a"])

    @pytest.mark.unit
    def test_http_error_raises(self, service, http, jina_settings) -> None:
        http.post.side_effect = httpx.ConnectError("refused")
        with patch("commentguard.services.embeddings_service.get_settings", return_value=jina_settings):
            with pytest.raises(EmbeddingProviderError):
                service.embed_many(["a"])

    @pytest.mark.unit
    def test_count_mismatch_raises(self, service, http, jina_settings) -> None:
        http.post.return_value = _response([{"index": 0, "embedding": [0.1]}])
        with patch("commentguard.services.embeddings_service.get_settings", return_value=jina_settings):
            with pytest.raises(EmbeddingProviderError, match="1 embeddings for 2 inputs"):
                service.embed_many(["a", "b"])

    @pytest.mark.unit
    def test_embed_returns_single_vector(self, service, http, jina_settings) -> None:
        http.post.return_value = _response([{"index": 0, "embedding": [0.5, 0.5]}])
        with patch("commentguard.services.embeddings_service.get_settings", return_value=jina_settings):
            assert service.embed("hello") == [0.5, 0.5]
