"""
Tests for OpenAI embedder.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from kbgraph.core.embeddings.openai import OpenAIEmbedder
from kbgraph.utils.exceptions import EmbeddingError, ValidationError


@pytest.fixture
def openai_embedder():
    """Create OpenAI embedder for testing."""
    return OpenAIEmbedder(api_key="test-key", model="text-embedding-3-small", timeout=120.0)


def embedding_response(vectors: list[list[float]], total_tokens: int = 7, order: list[int] | None = None):
    order = order or list(range(len(vectors)))
    response = MagicMock()
    response.data = [MagicMock(index=i, embedding=vectors[i]) for i in order]
    response.usage = MagicMock(total_tokens=total_tokens)
    return response


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenAIEmbedder:
    """Test OpenAI embedder implementation."""

    async def test_initialization(self, openai_embedder):
        """Test embedder initialization."""
        assert openai_embedder.model == "text-embedding-3-small"
        assert openai_embedder.timeout == 120.0
        assert openai_embedder.client is not None

    async def test_embed_texts(self, openai_embedder):
        """Test batch embedding keeps input order and reports usage."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = embedding_response([[0.1, 0.2], [0.3, 0.4]], order=[1, 0])

            result = await openai_embedder.embed_texts(["first", "second"])

            assert result.embeddings == [[0.1, 0.2], [0.3, 0.4]]
            assert result.total_tokens == 7
            assert result.model == "text-embedding-3-small"
            mock_create.assert_called_once_with(
                model="text-embedding-3-small", input=["first", "second"]
            )

    async def test_embed_single(self, openai_embedder):
        """Test single-text embedding."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = embedding_response([[0.5, 0.5]])

            assert await openai_embedder.embed("hello") == [0.5, 0.5]

    async def test_empty_list_rejected(self, openai_embedder):
        """Test an empty batch is rejected before calling the API."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            await openai_embedder.embed_texts([])

    async def test_blank_text_rejected(self, openai_embedder):
        """Test blank texts are rejected."""
        with pytest.raises(ValidationError, match="Text cannot be empty"):
            await openai_embedder.embed_texts(["ok", "   "])

    async def test_api_error_wrapped(self, openai_embedder):
        """Test provider errors become EmbeddingError."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.side_effect = RuntimeError("rate limited")

            with pytest.raises(EmbeddingError, match="rate limited"):
                await openai_embedder.embed_texts(["hello"])

    async def test_incomplete_response(self, openai_embedder):
        """Test a response with fewer vectors than inputs is an error."""
        with patch.object(
            openai_embedder.client.embeddings, "create", new_callable=AsyncMock
        ) as mock_create:
            mock_create.return_value = embedding_response([[0.1]])

            with pytest.raises(EmbeddingError, match="incomplete"):
                await openai_embedder.embed_texts(["a", "b"])

    async def test_timeout(self, openai_embedder):
        """Test a slow call is cut off at the deadline."""
        openai_embedder.timeout = 0.01

        async def slow(**kwargs):
            await asyncio.sleep(1)

        with patch.object(openai_embedder.client.embeddings, "create", side_effect=slow):
            with pytest.raises(EmbeddingError, match="timed out"):
                await openai_embedder.embed_texts(["hello"])

    async def test_known_dimension(self, openai_embedder):
        """Test registered models answer their dimension without a request."""
        assert await openai_embedder.get_dimension() == 1536

    async def test_unknown_model_dimension_probes(self):
        """Test unregistered models embed a probe text."""
        embedder = OpenAIEmbedder(api_key="test-key", model="custom-embed")
        with patch.object(embedder.client.embeddings, "create", new_callable=AsyncMock) as mock_create:
            mock_create.return_value = embedding_response([[0.0] * 8])

            assert await embedder.get_dimension() == 8
